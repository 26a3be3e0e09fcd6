"""ForkSync - keep a fork in step with its boilerplate, file by file."""

__version__ = "0.1.0"
