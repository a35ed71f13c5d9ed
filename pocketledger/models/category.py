from dataclasses import dataclass
from typing import Optional


@dataclass
class Category:
    id: int
    name: str
    type: str           # 'expense' | 'income'
    color_hex: str = "#888888"
    parent_id: Optional[int] = None
    created_at: str = ""

    @property
    def is_subcategory(self) -> bool:
        return self.parent_id is not None
