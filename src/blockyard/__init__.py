"""blockyard: share source-code blocks between repositories through registries."""

__version__ = "0.1.0"
