"""
Modules package for home-automation.

Modules are plug-ins that add behavior on top of the device registry.
"""

from home_automation.modules.base import HomeModule

__all__ = ["HomeModule"]
