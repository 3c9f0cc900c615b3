"""
Module entry point for: python -m mcq_extractor

Allows running the extractor directly as a module:
    python -m mcq_extractor extract <file> [options]
    python -m mcq_extractor parse-text <text_file> [options]
    python -m mcq_extractor serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
