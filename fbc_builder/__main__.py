from .cli import fbc

if __name__ == "__main__":  # pragma: no cover
    fbc()
