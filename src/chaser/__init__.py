"""Payment chaser: follow-up orchestration for unpaid payment requests."""

__version__ = "0.1.0"
