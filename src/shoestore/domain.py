"""Shoe store domain: catalogue, customers, ordering, payments and notifications.

All bounded contexts register their elements against this single Protean
domain. Events reach their handlers synchronously unless the config overlay
says otherwise.

Elements live two levels below this package (``<context>/<aggregate>/*.py``),
deeper than ``Domain.init()`` traverses, so ``load_elements()`` must run
before ``init()``.
"""

import importlib
from pathlib import Path

import structlog
from protean.domain import Domain

shoestore = Domain(name="shoestore")

logger = structlog.get_logger(__name__)

PACKAGE_ROOT = Path(__file__).parent

# Transport and infrastructure code registers nothing with the domain
SKIPPED_PACKAGES = {"api", "utils", "__pycache__"}


def element_modules() -> list[str]:
    """Dotted names of every module that may register domain elements."""
    names = []
    for path in sorted(PACKAGE_ROOT.rglob("*.py")):
        relative = path.relative_to(PACKAGE_ROOT)
        if SKIPPED_PACKAGES.intersection(relative.parts[:-1]):
            continue
        if relative.parts == ("domain.py",) or relative.name == "__init__.py":
            continue
        names.append(".".join((PACKAGE_ROOT.name, *relative.with_suffix("").parts)))
    return names


def load_elements() -> list[str]:
    """Import every element module so its decorators register with ``shoestore``."""
    loaded = []
    for name in element_modules():
        importlib.import_module(name)
        loaded.append(name)
    logger.debug("domain_elements_loaded", modules=len(loaded))
    return loaded
