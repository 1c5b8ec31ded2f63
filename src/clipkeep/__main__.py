import argparse
import logging
import subprocess
import sys
from pathlib import Path

from clipkeep.config import DATA_DIR, LOG_PATH, MENU_DISPLAY_COUNT, STORE_PATH
from clipkeep.persistence import read_document
from clipkeep.search import rank
from clipkeep.utils import ensure_dirs

LABEL = "com.clipkeep.app"
PLIST_NAME = f"{LABEL}.plist"
LAUNCHAGENT_DIR = Path.home() / "Library" / "LaunchAgents"
PLIST_PATH = LAUNCHAGENT_DIR / PLIST_NAME


def get_clipkeep_path() -> str:
    """Get the path to the clipkeep executable."""
    import shutil

    clipkeep_path = shutil.which("clipkeep")
    if clipkeep_path:
        return clipkeep_path
    return f"{sys.executable} -m clipkeep"


def create_plist(clipkeep_path: str) -> str:
    """Generate the LaunchAgent plist content."""
    program_args = "\n".join(f"        <string>{part}</string>" for part in clipkeep_path.split() + ["run"])
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{LABEL}</string>
    <key>ProgramArguments</key>
    <array>
{program_args}
    </array>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{DATA_DIR}/clipkeep.log</string>
    <key>StandardErrorPath</key>
    <string>{DATA_DIR}/clipkeep.log</string>
</dict>
</plist>
"""


def install_launchagent() -> int:
    """Install and start the LaunchAgent."""
    ensure_dirs()

    clipkeep_path = get_clipkeep_path()
    print(f"Installing LaunchAgent for: {clipkeep_path}")

    LAUNCHAGENT_DIR.mkdir(parents=True, exist_ok=True)

    if PLIST_PATH.exists():
        subprocess.run(["launchctl", "unload", str(PLIST_PATH)], capture_output=True)

    PLIST_PATH.write_text(create_plist(clipkeep_path))
    print(f"Created: {PLIST_PATH}")

    result = subprocess.run(
        ["launchctl", "load", str(PLIST_PATH)],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("Clipkeep is now running in the background.")
        print("It will start automatically on login.")
        return 0
    print(f"Failed to load LaunchAgent: {result.stderr}")
    return 1


def uninstall_launchagent() -> int:
    """Stop and remove the LaunchAgent."""
    if not PLIST_PATH.exists():
        print("LaunchAgent not installed.")
        return 0

    subprocess.run(["launchctl", "unload", str(PLIST_PATH)], capture_output=True)
    PLIST_PATH.unlink()
    print("LaunchAgent uninstalled.")
    print("Clipkeep will no longer start on login.")
    return 0


def check_status() -> int:
    """Check if Clipkeep is running."""
    result = subprocess.run(["launchctl", "list", LABEL], capture_output=True, text=True)

    if result.returncode == 0:
        print("Clipkeep is running.")
        if PLIST_PATH.exists():
            print(f"LaunchAgent: {PLIST_PATH}")
        return 0

    print("Clipkeep is not running.")
    if PLIST_PATH.exists():
        print(f"LaunchAgent installed but not loaded: {PLIST_PATH}")
    else:
        print("LaunchAgent not installed. Run: clipkeep install")
    return 1


def list_history(limit: int, store_path: Path = STORE_PATH) -> int:
    """Print the most recent saved items."""
    document = read_document(store_path)
    if not document.items:
        print("No clipboard history.")
        return 0
    for item in document.items[:limit]:
        print(f"[{item.kind_label}] {item.preview}")
    return 0


def search_history(query: str, limit: int, store_path: Path = STORE_PATH) -> int:
    """Print saved items matching ``query``, best match first."""
    document = read_document(store_path)
    results = rank(query, document.items)[:limit]
    if not results:
        print(f'No results for "{query}"')
        return 1
    for item in results:
        print(f"[{item.kind_label}] {item.preview}")
    return 0


def run_app():
    """Run the Clipkeep application."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from clipkeep.app import ClipkeepApp

    app = ClipkeepApp()
    app.run()


def main():
    parser = argparse.ArgumentParser(
        description="Clipkeep - Clipboard history manager for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none), run   Run Clipkeep in foreground
  install       Install as LaunchAgent (runs on login)
  uninstall     Remove LaunchAgent
  status        Check if Clipkeep is running
  list          Print recent saved items
  search QUERY  Print saved items matching QUERY

Examples:
  clipkeep install         # Install and start as background service
  clipkeep list -n 20      # Show the 20 most recent items
  clipkeep search invoice  # Find items mentioning "invoice"
""",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run Clipkeep in foreground")
    subparsers.add_parser("install", help="Install as LaunchAgent")
    subparsers.add_parser("uninstall", help="Remove LaunchAgent")
    subparsers.add_parser("status", help="Check if Clipkeep is running")
    list_parser = subparsers.add_parser("list", help="Print recent saved items")
    list_parser.add_argument("-n", "--limit", type=int, default=MENU_DISPLAY_COUNT)
    search_parser = subparsers.add_parser("search", help="Search saved items")
    search_parser.add_argument("query")
    search_parser.add_argument("-n", "--limit", type=int, default=MENU_DISPLAY_COUNT)

    args = parser.parse_args()

    if args.command == "install":
        sys.exit(install_launchagent())
    elif args.command == "uninstall":
        sys.exit(uninstall_launchagent())
    elif args.command == "status":
        sys.exit(check_status())
    elif args.command == "list":
        sys.exit(list_history(args.limit))
    elif args.command == "search":
        sys.exit(search_history(args.query, args.limit))
    else:
        run_app()


if __name__ == "__main__":
    main()
