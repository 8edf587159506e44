__all__ = ["ScopeWindow", "ScopeWidget", "XYWidget"]

from .main_window import ScopeWindow
from .scope_widget import ScopeWidget
from .xy_widget import XYWidget
