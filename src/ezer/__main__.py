"""Entry point: python -m ezer [command]"""

from ezer.cli import app

if __name__ == "__main__":
    app(prog_name="ezer")
