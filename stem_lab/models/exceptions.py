class InvalidExperimentConfigError(Exception):
    """Experiment configuration failed validation."""
    def __init__(self, message="Unable to validate experiment configuration."):
        super().__init__(message)

class ElementNotFoundError(Exception):
    """Element ID not found in the lab."""
    def __init__(self, message="Element ID not found in lab."):
        super().__init__(message)

class StateTransitionError(Exception):
    """Operation requires a component the lab does not have."""
    def __init__(self, message="Invalid state transition attempted."):
        super().__init__(message)
