"""Publish Next.js serverless builds to Azure Functions and Blob Storage.

This package exposes the CLI entry points used by the ``nextfunc`` console
script and the bundled GitHub Action to package a compiled Next.js build into
an Azure Functions archive, upload static assets, and provision the Azure
resources that serve them.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from nextfunc import main
>>> main()  # doctest: +SKIP
>>> from nextfunc import app
>>> app(["package", "--help"])  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
