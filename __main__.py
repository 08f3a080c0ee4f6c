#!/usr/bin/env python3
"""
FitTrack - Network-Aware Workout Tracker
Entry Point Module
Handles dependency checking, launcher options and application startup.
Tracker options (--simulate, --network-tier, ...) are forwarded to main.
"""
import argparse
import importlib
import os
import sys
import time
import traceback
from pathlib import Path
from typing import Optional, List, Tuple
def parse_arguments(argv: Optional[List[str]] = None) -> Tuple[argparse.Namespace, List[str]]:
    """Parse launcher arguments, returning them with the tracker options left over."""
    parser = argparse.ArgumentParser(
        description="FitTrack - Network-Aware Workout Tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fittrack                          # Start with platform GPS
  python -m fittrack --check-deps             # Check dependencies only
  python -m fittrack --simulate random        # Random-walk jogger
  python -m fittrack --simulate run.json      # Replay a recorded route
  python -m fittrack --network-tier slow-2g   # Pin the network tier
  python -m fittrack --debug --log-dir ./logs # Debug logging to ./logs
        """
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version="FitTrack 1.0.0"
    )
    parser.add_argument(
        "--check-deps", "-c",
        action="store_true",
        help="Check dependencies and exit"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force start application even if dependencies are missing"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        help="Custom directory for log files"
    )
    return parser.parse_known_args(argv)
def forwarded_arguments(args: argparse.Namespace, remaining: List[str]) -> List[str]:
    """Arguments handed to ``main.main``."""
    forwarded = list(remaining)
    if args.debug:
        forwarded.append("--debug")
    if args.log_dir:
        forwarded.extend(["--log-dir", args.log_dir])
    return forwarded
REQUIRED_PACKAGES = {
    'PySide6': 'GUI framework, positioning and network information',
    'numpy': 'Route distance calculations',
}
# Optional Qt add-ons and the launcher option that replaces each one.
QT_ADDONS = {
    'QtPositioning': '--simulate',
    'QtNetwork': '--network-tier',
}
def missing_qt_addons() -> List[str]:
    """Qt add-on modules that cannot be imported."""
    missing = []
    for addon in QT_ADDONS:
        try:
            importlib.import_module(f"PySide6.{addon}")
        except ImportError:
            missing.append(addon)
    return missing
def check_dependencies() -> bool:
    """Check required packages, then the Qt add-ons the tracker backends use."""
    print(f"Python version: {sys.version}")
    print(f"Python executable: {sys.executable}\n")
    missing_required = []
    for name, description in REQUIRED_PACKAGES.items():
        try:
            module = importlib.import_module(name)
        except ImportError as e:
            missing_required.append(name)
            print(f"ERROR {name}: {description} - MISSING")
            print(f"   Import error: {e}")
            continue
        print(f"OK {name}: {description} (version: {getattr(module, '__version__', 'unknown')})")
    if missing_required:
        print(f"\nMissing required dependencies:")
        for name in missing_required:
            print(f"   - {name} ({REQUIRED_PACKAGES[name]})")
        print(f"\nTry installing with:")
        print(f"   python3 -m pip install --user " + " ".join(missing_required))
        return False
    for addon in missing_qt_addons():
        print(f"WARNING PySide6.{addon}: not available, start with {QT_ADDONS[addon]}")
    return True
def setup_environment():
    """Setup the application environment."""
    # Add current directory to Python path for module imports
    current_dir = Path(__file__).parent
    if str(current_dir) not in sys.path:
        sys.path.insert(0, str(current_dir))
    os.environ.setdefault('QT_ENABLE_HIGHDPI_SCALING', '1')
    home_dir = Path.home() / "FitTrack"
    home_dir.mkdir(exist_ok=True)
    (home_dir / "logs").mkdir(exist_ok=True)
def main(argv: Optional[List[str]] = None):
    """Main entry point for the FitTrack launcher."""
    try:
        args, remaining = parse_arguments(argv)
        print("\n" + "="*60)
        print("FitTrack - Network-Aware Workout Tracker")
        print("   Version 1.0.0")
        print("="*60 + "\n")
        setup_environment()
        print("Checking dependencies...")
        deps_ok = check_dependencies()
        if args.check_deps:
            print("\nAll dependencies are satisfied!" if deps_ok else "\nSome dependencies are missing!")
            return 0 if deps_ok else 1
        if not args.force and not deps_ok:
            print("\nCannot start application due to missing dependencies.")
            print("Use --force to attempt startup anyway, or install missing packages.")
            return 1
        if not deps_ok:
            print("\nStarting with missing dependencies (--force specified)")
            print("Some features may not work correctly.\n")
        if args.debug:
            print("Debug logging enabled\n")
        from main import main as run_main
        return run_main(forwarded_arguments(args, remaining))
    except KeyboardInterrupt:
        print("\n\nApplication interrupted by user")
        return 130
    except Exception as e:
        print(f"\nCritical error starting FitTrack:")
        print(f"   {type(e).__name__}: {e}")
        if args.debug if 'args' in locals() else False:
            print(f"\nDebug traceback:")
            traceback.print_exc()
        else:
            print(f"\nRun with --debug for detailed error information")
        return 1
if __name__ == "__main__":
    start_time = time.time()
    try:
        exit_code = main()
        runtime = time.time() - start_time
        print(f"\nFitTrack ran for {runtime:.2f} seconds")
        sys.exit(exit_code)
    except SystemExit:
        runtime = time.time() - start_time
        print(f"\nFitTrack ran for {runtime:.2f} seconds")
        raise
