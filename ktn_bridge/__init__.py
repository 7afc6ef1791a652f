"""ktn-bridge: build-time rewrite of web-standard JavaScript into kintone customizations."""

__version__ = "0.1.0"
