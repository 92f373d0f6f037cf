"""
Command-line interface for the STEM lab simulation.

Usage:
    stem-lab --config examples/capacitor_discharge.yaml
    stem-lab --config examples/capacitor_discharge.yaml --script examples/capacitor_discharge.txt
"""

import argparse
import shlex
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .config.experiment_config import load_config
from .controllers.lab_controller import LabController
from .models.exceptions import ElementNotFoundError, InvalidExperimentConfigError, StateTransitionError
from .utils.logger.logger import Logger


class LabCommandLine:
    """Interactive (or scripted) command loop over a LabController."""

    def __init__(self, controller: LabController, quiet: bool = False):
        self.controller = controller
        self.quiet = quiet
        self.running = True

        # Command catalog
        self.commands = {
            'help': {
                'description': 'Show available commands and their usage',
                'usage': 'help [command]',
                'examples': ['help', 'help drag'],
            },
            'status': {
                'description': 'Show the current step, wiring and equipment state',
                'usage': 'status',
                'examples': ['status'],
            },
            'start': {
                'description': 'Start (or restart) the experiment',
                'usage': 'start',
                'examples': ['start'],
            },
            'next': {
                'description': 'Confirm the current step with its next button',
                'usage': 'next',
                'examples': ['next'],
            },
            'jump': {
                'description': 'Jump to a step index',
                'usage': 'jump <step_index>',
                'examples': ['jump 3'],
            },
            'action': {
                'description': 'Register a completed action directly',
                'usage': 'action <action_id>',
                'examples': ['action read_instructions'],
            },
            'drag': {
                'description': 'Drag a wire end to a position and release it',
                'usage': 'drag <wire_id> <x> <y>',
                'examples': ['drag red_lead 2.0 1.0'],
            },
            'disconnect': {
                'description': 'Disconnect a wire',
                'usage': 'disconnect <wire_id>',
                'examples': ['disconnect red_lead'],
            },
            'switch': {
                'description': 'Toggle a switch, or set it on/off',
                'usage': 'switch <switch_id> [on|off]',
                'examples': ['switch s1', 'switch s1 off'],
            },
            'power': {
                'description': 'Turn the power supply on or off',
                'usage': 'power <on|off>',
                'examples': ['power on'],
            },
            'voltage': {
                'description': 'Set the power supply voltage',
                'usage': 'voltage <volts>',
                'examples': ['voltage 6'],
            },
            'knob': {
                'description': 'Turn a knob to a preset index',
                'usage': 'knob <knob_id> <preset_index>',
                'examples': ['knob range 2'],
            },
            'press': {
                'description': 'Press an equipment button, or a data logger button',
                'usage': 'press <button_id> | press logger <power|up|down|confirm|cancel>',
                'examples': ['press reset', 'press logger confirm'],
            },
            'tick': {
                'description': 'Advance the simulation by one time step',
                'usage': 'tick <seconds>',
                'examples': ['tick 0.1'],
            },
            'run': {
                'description': 'Advance the simulation for a duration',
                'usage': 'run <seconds> [dt]',
                'examples': ['run 20', 'run 20 0.05'],
            },
            'export': {
                'description': 'Export the discharge recording',
                'usage': 'export [folder] [format ...]',
                'examples': ['export', 'export ./exports csv png'],
            },
            'exit': {
                'description': 'Exit the CLI',
                'usage': 'exit',
                'examples': ['exit'],
            },
        }

        self.controller.experiment.on_step_changed.subscribe(self._on_step_changed)
        self.controller.experiment.on_experiment_complete.subscribe(self._on_experiment_complete)

    def _print(self, message: str = ""):
        if not self.quiet:
            print(message)

    def _on_step_changed(self, step_index: int):
        step = self.controller.experiment.current_step
        self._print(f">>> Step {step_index + 1}/{self.controller.experiment.step_count}: {step.step_id}")
        if step.instruction:
            self._print(f"    {step.instruction}")

    def _on_experiment_complete(self):
        self._print(">>> Experiment complete!")

    def run(self):
        """Main command loop."""
        Logger.log("start run()")
        self._print(f"=== {self.controller.config.experiment.title} ===")
        self._print("Type 'help' to see available commands")
        while self.running:
            try:
                command = input("\nlab> ").strip()
            except KeyboardInterrupt:
                print("\n>>> Use 'exit' to exit the application.")
                continue
            except EOFError:
                break
            if command:
                self.process_command(command)
        Logger.log("end run()")

    def run_script(self, lines: Iterable[str]) -> bool:
        """Replay commands; blank lines and '#' comments are skipped. Returns False on the first error."""
        for line in lines:
            command = line.strip()
            if not command or command.startswith("#"):
                continue
            self._print(f"lab> {command}")
            if not self.process_command(command):
                return False
            if not self.running:
                break
        return True

    def process_command(self, command: str) -> bool:
        """Parse and dispatch a command; returns False when it failed."""
        try:
            parts = shlex.split(command)
            if not parts:
                return True
            cmd = parts[0].lower()
            args = parts[1:]
            Logger.log(f"Processing command: {cmd} with args: {args}")
            return self._execute_command(cmd, args)
        except (ElementNotFoundError, StateTransitionError, ValueError) as ex:
            print(f">>> Error: {ex}")
            Logger.log(f"Error processing command '{command}': {ex}", Logger.LogPriority.ERROR)
            return False

    def _execute_command(self, cmd: str, args: List[str]) -> bool:
        c = self.controller
        if cmd in ('exit', 'quit'):
            self.running = False
        elif cmd == 'help':
            self._handle_help(args)
        elif cmd == 'status':
            self._handle_status()
        elif cmd == 'start':
            c.start()
        elif cmd == 'next':
            if not c.confirm_next():
                self._print(">>> This step cannot be confirmed manually")
        elif cmd == 'jump':
            if not c.jump_to(int(self._arg(args, 0, 'jump'))):
                self._print(">>> Step index out of range")
        elif cmd == 'action':
            c.register_action(self._arg(args, 0, 'action'))
        elif cmd == 'drag':
            wire_id = self._arg(args, 0, 'drag')
            connected = c.drag_wire(wire_id, float(self._arg(args, 1, 'drag')), float(self._arg(args, 2, 'drag')))
            self._print(f">>> {wire_id}: {'connected' if connected else 'returned to source'}")
        elif cmd == 'disconnect':
            c.disconnect_wire(self._arg(args, 0, 'disconnect'))
        elif cmd == 'switch':
            switch_id = self._arg(args, 0, 'switch')
            if len(args) > 1:
                c.set_switch(switch_id, self._parse_on_off(args[1]))
            else:
                c.toggle_switch(switch_id)
        elif cmd == 'power':
            if self._parse_on_off(self._arg(args, 0, 'power')):
                c.power_on()
            else:
                c.power_off()
        elif cmd == 'voltage':
            c.set_supply_voltage(float(self._arg(args, 0, 'voltage')))
        elif cmd == 'knob':
            c.set_knob(self._arg(args, 0, 'knob'), int(self._arg(args, 1, 'knob')))
        elif cmd == 'press':
            target = self._arg(args, 0, 'press')
            if target == 'logger':
                c.press_data_logger(self._arg(args, 1, 'press'))
            else:
                c.press_button(target)
        elif cmd == 'tick':
            c.tick(float(self._arg(args, 0, 'tick')))
        elif cmd == 'run':
            dt = float(args[1]) if len(args) > 1 else 0.1
            ticks = c.run(float(self._arg(args, 0, 'run')), dt)
            self._print(f">>> Simulated {ticks} ticks (t = {c.simulation_time:.2f} s)")
        elif cmd == 'export':
            folder = args[0] if args else None
            formats = args[1:] or None
            path = c.export(formats, folder)
            self._print(f">>> Exported to {path}")
        else:
            print(f">>> Unknown command: '{cmd}'")
            print(">>> Type 'help' to see available commands")
            return False
        return True

    def _arg(self, args: List[str], index: int, cmd: str) -> str:
        if index >= len(args):
            raise ValueError(f"Usage: {self.commands[cmd]['usage']}")
        return args[index]

    @staticmethod
    def _parse_on_off(value: str) -> bool:
        value = value.lower()
        if value in ('on', 'true', '1'):
            return True
        if value in ('off', 'false', '0'):
            return False
        raise ValueError(f"Expected on/off, got '{value}'")

    def _handle_help(self, args: List[str]):
        if args:
            info = self.commands.get(args[0])
            if info is None:
                print(f">>> Unknown command: '{args[0]}'")
                return
            print(f"\nCommand: {args[0]}")
            print(f"Description: {info['description']}")
            print(f"Usage: {info['usage']}")
            print("Examples:")
            for example in info['examples']:
                print(f"  {example}")
            return
        print("Available commands:\n")
        for cmd, info in self.commands.items():
            print(f"  {cmd:<12} - {info['description']}")
        print("\nFor detailed help on a specific command, type: help <command>")

    def _handle_status(self):
        status = self.controller.status()
        print("\n" + "=" * 40)
        print("           LAB STATUS")
        print("=" * 40)
        for key, value in status.items():
            print(f"{key:<18} {value}")
        print("=" * 40)


def _configure_logging(config, log_path: Optional[Path]):
    if not config.logging.enabled and log_path is None:
        Logger.disable_logging()
        return
    Logger.initialize(str(log_path) if log_path else config.logging.file)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Interactive STEM lab: circuit wiring and capacitor discharge experiments"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        required=True,
        help="Path to YAML experiment configuration"
    )
    parser.add_argument(
        "--script", "-s",
        type=Path,
        default=None,
        help="File of commands to replay instead of the interactive loop"
    )
    parser.add_argument(
        "--log", "-l",
        type=Path,
        default=None,
        help="Log file path (overrides config)"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors"
    )

    args = parser.parse_args(argv)

    # Load and validate config
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1
    except InvalidExperimentConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _configure_logging(config, args.log)

    controller = LabController(config)
    cli = LabCommandLine(controller, quiet=args.quiet)
    if config.experiment.auto_start:
        controller.start()

    try:
        if args.script is not None:
            try:
                with open(args.script, 'r') as f:
                    lines = f.readlines()
            except FileNotFoundError:
                print(f"Error: Script file not found: {args.script}", file=sys.stderr)
                return 1
            return 0 if cli.run_script(lines) else 1
        cli.run()
        return 0
    finally:
        controller.dispose()
        Logger.flush_logs()


if __name__ == "__main__":
    sys.exit(main())
