"""Common literal values used across nextfunc.

These constants keep artefact filenames and blob prefixes centralized so the
packager, the orchestrator, and tests can import the same values without
drifting. Intended for internal use within the nextfunc package.

Examples
--------
>>> from nextfunc import _constants
>>> _constants.PACKAGE_FILENAME
'package.zip'
>>> sorted(_constants.RESERVED_PAGES)
['_app', '_document', '_error']
"""

# Framework entries consumed by the compiler, never exposed as routes.
RESERVED_PAGES = frozenset({"_app", "_document", "_error"})

PACKAGE_FILENAME = "package.zip"
PACKAGE_MANIFEST_FILENAME = "packagename.txt"
PAGES_WORKDIR = "pages"
ASSETS_WORKDIR = "assets"

HANDLER_FILENAME = "index.js"
BINDING_FILENAME = "function.json"
PROXIES_FILENAME = "proxies.json"
HOST_FILENAME = "host.json"

# Blob prefixes inside the asset container.
BUILD_ASSETS_PREFIX = "_next"
PUBLIC_ASSETS_PREFIX = "public"

# Upstream compiler output, relative to the workspace.
COMPILED_PAGES_DIR = ".next/serverless/pages"
COMPILED_STATIC_DIR = ".next/static"
PUBLIC_DIR = "public"
