from subprocess import run
import sys
from pathlib import Path

# Use the same interpreter that is running this script
PYTHON = sys.executable

# Paths
ROOT = Path(__file__).resolve().parent

# Each command is (argv_list, cwd). The daily report needs the employee directory
# settings (AUDIT_DIRECTORY_BASE_URL / AUDIT_DIRECTORY_API_KEY).
COMMANDS = [
    ([PYTHON, "-m", "reporting.run", "daily"], ROOT),
    ([PYTHON, "-m", "reporting.run", "weekly"], ROOT),
    ([PYTHON, "-m", "reporting.run", "monthly", "--mode", "current"], ROOT),
]


def main() -> None:
    print(f"Using Python interpreter: {PYTHON}")
    for cmd, cwd in COMMANDS:
        print(f"\n▶ Running: {' '.join(str(c) for c in cmd)}")
        print(f"   in cwd: {cwd}")
        result = run(cmd, cwd=str(cwd))
        if result.returncode != 0:
            print("✗ Command failed, stopping pipeline.")
            sys.exit(result.returncode)

    print("\n✅ All account audit reports completed successfully.")


if __name__ == "__main__":
    main()
