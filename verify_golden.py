#!/usr/bin/env python3
"""
MERGEDv3 Golden Container Verification Script
Decodes every container listed in tests/golden/manifest.json (or a
directory of containers given on the command line) and reports whether
each one matches its recorded outcome.
"""

import os
import sys
import json
from pathlib import Path
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'python-core'))

from merger.codec import FormatCodec
from merger.storage import SizedSource


class GoldenVerifier:
    """Checks golden containers against their manifest."""

    def __init__(self, golden_dir: str):
        self.golden_dir = Path(golden_dir)
        self.codec = FormatCodec()
        self.results = {
            'timestamp': datetime.now().isoformat(),
            'golden_dir': str(self.golden_dir),
            'files_checked': 0,
            'files_matching': 0,
            'files_differing': 0,
            'files': {},
            'errors': []
        }

    def run_full_verification(self):
        """Verify every entry of the manifest."""
        print("=" * 80)
        print("MERGEDv3 GOLDEN CONTAINER VERIFICATION")
        print("=" * 80)
        print(f"\nGolden Directory: {self.golden_dir}")
        print(f"Verification Time: {self.results['timestamp']}\n")

        manifest_path = self.golden_dir / 'manifest.json'
        if not manifest_path.exists():
            self.results['errors'].append(f"MISSING: {manifest_path}")
            print(f"  ❌ MISSING: {manifest_path}")
            return self.results

        manifest = json.loads(manifest_path.read_text(encoding='utf-8'))
        for file_name in sorted(manifest):
            self.check_container(file_name, manifest[file_name])

        self.print_summary()
        return self.results

    def check_container(self, file_name: str, expected: dict) -> bool:
        """Decode one container and compare the outcome with the manifest."""
        self.results['files_checked'] += 1
        path = self.golden_dir / file_name

        if not path.exists():
            self.results['files_differing'] += 1
            self.results['errors'].append(f"MISSING: {path}")
            print(f"  ❌ MISSING: {file_name}")
            return False

        result = self.codec.decode(SizedSource.from_path(str(path)))
        problems = []
        if result.success != expected['valid']:
            problems.append(f"expected valid={expected['valid']}, got {result.success}: {result.message}")
        elif result.success:
            carrier, attachment = result.outputs
            if carrier.size != expected['carrier_size']:
                problems.append(f"carrier size {carrier.size} != {expected['carrier_size']}")
            if attachment.size != expected['attachment_size']:
                problems.append(f"attachment size {attachment.size} != {expected['attachment_size']}")
            if attachment.name != expected['name']:
                problems.append(f"name {attachment.name!r} != {expected['name']!r}")
        elif result.error.value != expected['error']:
            problems.append(f"error {result.error.value} != {expected['error']}")

        self.results['files'][file_name] = {
            'size': path.stat().st_size,
            'success': result.success,
            'error': result.error.value if result.error else None,
            'problems': problems,
        }

        if problems:
            self.results['files_differing'] += 1
            for problem in problems:
                self.results['errors'].append(f"{file_name}: {problem}")
            print(f"  ❌ {file_name}: {'; '.join(problems)}")
            return False

        self.results['files_matching'] += 1
        outcome = "valid" if result.success else result.error.value
        print(f"  ✓ {file_name} ({outcome})")
        return True

    def print_summary(self):
        """Print the verification summary."""
        print("\n" + "─" * 80)
        print("SUMMARY")
        print("─" * 80)
        print(f"  Files checked:  {self.results['files_checked']}")
        print(f"  Matching:       {self.results['files_matching']}")
        print(f"  Differing:      {self.results['files_differing']}")

        print("\n" + "=" * 80)
        if self.results['files_differing'] == 0 and not self.results['errors']:
            print("✅ VERIFICATION COMPLETE - ALL GOLDEN CONTAINERS MATCH")
        else:
            print("❌ VERIFICATION COMPLETE - GOLDEN CONTAINERS DIFFER")
        print("=" * 80)


def main():
    """Main entry point."""
    golden_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'tests', 'golden')

    if len(sys.argv) > 1:
        golden_dir = sys.argv[1]

    verifier = GoldenVerifier(golden_dir)
    results = verifier.run_full_verification()

    # Return appropriate exit code
    if results['files_differing'] > 0 or results['errors']:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
