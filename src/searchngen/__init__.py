"""SearchNGen: interaction logging and a single-session coding assistant for editors."""

__version__ = "0.3.0"
