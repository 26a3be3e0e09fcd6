"""ForkSync CLI."""
