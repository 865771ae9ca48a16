"""Module entrypoint for `python -m gcmsender`."""

from gcmsender.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
