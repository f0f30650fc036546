from .comparison import ComparisonRecord
from .item import Item

__all__ = ["ComparisonRecord", "Item"]
