"""Play queue, application state, response parsers, audio cache, downloads and a silent audio engine for a terminal music player."""

__version__ = "0.0.9"