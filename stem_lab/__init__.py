"""
Interactive STEM lab simulation.

Step-by-step experiments built from wires, switches, equipment and a
simulated RC capacitor, driven from a YAML configuration.
"""

__version__ = "0.1.0"
