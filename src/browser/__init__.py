"""
Browser Module

Playwright side of the harness.

Structure:
- recorder_script.py - JavaScript forwarder injected into every document
- tracked_page.py - Page + recorder + wait coordinator bundle
- session.py - Browser/context lifecycle per project (local or CDP)

Main exports for common use:
"""

from __future__ import annotations

from typing import Any
import importlib


_LAZY_EXPORTS = {
    "TrackedPage": ("browser.tracked_page", "TrackedPage"),
    "BrowserSession": ("browser.session", "BrowserSession"),
    "BrowserStatus": ("browser.session", "BrowserStatus"),
    "build_recorder_script": ("browser.recorder_script", "build_recorder_script"),
}


__all__ = [
    # Intentionally omit lazy exports from `__all__`; direct imports
    # (`from browser import TrackedPage`) still work via PEP 562 `__getattr__`.
]


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr = _LAZY_EXPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, attr)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'browser' has no attribute {name!r}")
