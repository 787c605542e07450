"""openhub: glue service between the Open Build Service and Docker Hub."""

__version__ = "0.3.0"
