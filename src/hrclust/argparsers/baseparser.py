import argparse

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class BaseParser:
    """argparse wrapper carrying the options every hrclust command shares."""

    def __init__(self, description: str, prog: str | None = None):
        self.parser = argparse.ArgumentParser(prog=prog, description=description,
                                              formatter_class=argparse.ArgumentDefaultsHelpFormatter)
        self.parser.add_argument("--log-level", "-L", type=str.upper, choices=LOG_LEVELS, default="INFO",
                                 help="Logging level")

    def add_argument(self, *args, **kwargs):
        self.parser.add_argument(*args, **kwargs)

    def parse_args(self, args=None):
        return self.parser.parse_args(args)
