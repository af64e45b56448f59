"""Allow ``python -m maintenance_gate``."""

from maintenance_gate.app import run

if __name__ == "__main__":
    run()
