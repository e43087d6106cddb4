"""Run the audit logger CLI as a module.

This allows `python -m deploy_audit` to behave identically to invoking the
installed `deploy-audit` console script.
"""

from .cli import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
