"""
Toolgate Tools.

One subpackage per capability family. Each exposes its tool class and a
``backend`` module with the backend interface and an in-memory mock.
"""

from toolgate.tools.base import BaseTool

__all__ = ["BaseTool"]
