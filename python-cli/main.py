#!/usr/bin/env python3
"""
Merger Command Line Interface

Hide any file inside a video (or any other carrier file) as a MERGEDv3
container, and recover both files from such a container.

Usage:
    merger merge <carrier> <attachment> [output] [OPTIONS]
    merger split <container> [output_dir] [OPTIONS]
    merger detect <file>
    merger inspect <file>
    merger --version
    merger --help
"""

import sys
import os
import argparse
import json
import logging
from typing import Optional

# Add python-core to path for imports when running from a checkout
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'python-core'))

from merger import (
    LoggingDiagnostics,
    MergedFileProcessor,
    MergerConfig,
    MergerError,
    OperationResult,
    ProcessingStrategy,
    ProgressEvent,
)
from merger.format import format_file_size


class MergerCLI:
    """Main CLI application for the merger."""

    def __init__(self):
        self.processor: Optional[MergedFileProcessor] = None
        self.dev_mode = False
        self._last_phase = None

    def run(self, args: list) -> int:
        """Run the CLI with given arguments."""
        parser = self.create_parser()
        parsed = parser.parse_args(args)

        if not hasattr(parsed, 'func'):
            parser.print_help()
            return 0

        self.dev_mode = parsed.dev
        logging.basicConfig(
            level=logging.DEBUG if parsed.dev else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )

        try:
            config = MergerConfig.load(parsed.config) if parsed.config else MergerConfig.default()
            overrides = {}
            if parsed.strategy:
                overrides['strategy'] = ProcessingStrategy(parsed.strategy)
            if parsed.overwrite:
                overrides['overwrite'] = True
            if overrides:
                data = config.to_dict()
                data.update({key: getattr(value, 'value', value) for key, value in overrides.items()})
                config = MergerConfig.from_dict(data)
        except MergerError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        self.processor = MergedFileProcessor(config)
        return parsed.func(parsed)

    def create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            prog="merger",
            description="Hide a file inside a video as a MERGEDv3 container, or split one apart",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
    merger merge video.mp4 secret.txt output_v3.mp4
    merger split output_v3.mp4 extracted_v3
    merger detect output_v3.mp4
    merger --dev inspect output_v3.mp4
            """
        )

        parser.add_argument(
            '--version',
            action='version',
            version='MERGEDv3 merger v3.0.0'
        )
        parser.add_argument('--dev', '-d', action='store_true',
                            help='Developer mode: print detailed diagnostics')
        parser.add_argument('--strategy', '-s', choices=['auto', 'memory', 'stream'],
                            help='Processing strategy (default: auto)')
        parser.add_argument('--config', '-c', help='JSON configuration file')
        parser.add_argument('--overwrite', action='store_true',
                            help='Overwrite existing output files')
        parser.add_argument('--json', action='store_true',
                            help='Print the result as JSON')

        subparsers = parser.add_subparsers(title='commands', dest='command')

        # Merge command
        merge_cmd = subparsers.add_parser('merge', help='Hide a file inside a carrier file')
        merge_cmd.add_argument('carrier', help='Carrier file (typically a video)')
        merge_cmd.add_argument('attachment', help='File to hide')
        merge_cmd.add_argument('output', nargs='?',
                               help='Output container (default: <carrier>_merged_v3.<ext>)')
        merge_cmd.add_argument('--name', '-n', help='Attachment name stored in the container')
        merge_cmd.set_defaults(func=self.handle_merge)

        # Split command
        split_cmd = subparsers.add_parser('split', help='Recover both files from a container')
        split_cmd.add_argument('container', help='MERGEDv3 container')
        split_cmd.add_argument('output_dir', nargs='?', help='Output directory')
        split_cmd.set_defaults(func=self.handle_split)

        # Detect command
        detect_cmd = subparsers.add_parser('detect', help='Check whether a file is a container')
        detect_cmd.add_argument('file', help='File to check')
        detect_cmd.set_defaults(func=self.handle_detect)

        # Inspect command
        inspect_cmd = subparsers.add_parser('inspect', help='Show the trailer of a container')
        inspect_cmd.add_argument('file', help='File to inspect')
        inspect_cmd.set_defaults(func=self.handle_inspect)

        return parser

    # Output helpers

    def on_progress(self, event: ProgressEvent) -> None:
        """Print one line per phase."""
        if event.phase != self._last_phase:
            self._last_phase = event.phase
            print(f"[{event.fraction * 100:5.1f}%] {event.phase}", file=sys.stderr)

    def report(self, result: OperationResult, args) -> int:
        """Print the operation result and return the exit code."""
        if self.dev_mode and result.debug_info is not None:
            for line in result.debug_info.render():
                print(f"  [debug] {line}", file=sys.stderr)

        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        elif result.success:
            print(result.message)
            for output in result.outputs:
                print(f"  {output.role.value}: {output.location or output.name} ({format_file_size(output.size)})")
        else:
            print(f"Error: {result.message}", file=sys.stderr)
            if self.dev_mode and result.error_detail:
                print(result.error_detail, file=sys.stderr)
        return 0 if result.success else 1

    # Command handlers

    def handle_merge(self, args) -> int:
        """Handle merge command."""
        diagnostics = LoggingDiagnostics() if self.dev_mode else None
        result = self.processor.merge_files(
            args.carrier,
            args.attachment,
            output_path=args.output,
            attachment_name=args.name,
            progress=self.on_progress,
            diagnostics=diagnostics,
        )
        return self.report(result, args)

    def handle_split(self, args) -> int:
        """Handle split command."""
        diagnostics = LoggingDiagnostics() if self.dev_mode else None
        result = self.processor.split_file(
            args.container,
            output_dir=args.output_dir,
            progress=self.on_progress,
            diagnostics=diagnostics,
        )
        return self.report(result, args)

    def handle_detect(self, args) -> int:
        """Handle detect command."""
        found = self.processor.detect_file(args.file, LoggingDiagnostics() if self.dev_mode else None)
        if args.json:
            print(json.dumps({'file': args.file, 'container': found}))
        elif found:
            print(f"{args.file}: MERGEDv3 container detected")
        else:
            print(f"{args.file}: ordinary file, no container marker")
        return 0 if found else 1

    def handle_inspect(self, args) -> int:
        """Handle inspect command."""
        info = self.processor.inspect_file(args.file, LoggingDiagnostics() if self.dev_mode else None)
        if args.json:
            print(json.dumps({
                'file': args.file,
                'valid': info.valid,
                'file_size': info.file_size,
                'carrier_size': info.carrier_size,
                'attachment_size': info.attachment_size,
                'name': info.name,
                'positions': info.positions,
                'validation_error': info.validation_error,
            }, indent=2))
        else:
            for line in info.render():
                print(line)
            print("Structure valid" if info.valid else "Structure invalid")
        return 0 if info.valid else 1


def main():
    """Main entry point."""
    cli = MergerCLI()
    sys.exit(cli.run(sys.argv[1:]))


if __name__ == "__main__":
    main()
