"""Draw Advisor Engine — projection, discipline rules and advisory insights."""

__version__ = "1.0.0"
