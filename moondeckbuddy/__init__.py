"""Steam process and log tracking, PC power control and API request routing for a remote gaming PC."""

__version__ = "1.9.0"