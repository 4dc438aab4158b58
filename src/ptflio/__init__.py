"""ptflio - portfolio content backend with a resilient two-tier cache."""

__version__ = "0.1.0"
