import re

import structlog

from pocketledger.database.category_dao import CategoryDAO
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.errors import ConstraintViolationError, NotFoundError
from pocketledger.models.category import Category
from pocketledger.utils.constants import CATEGORY_TYPES, DEFAULT_CATEGORIES

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class CategoryService:
    def __init__(self, db: DatabaseManager, category_dao: CategoryDAO):
        self._db = db
        self._dao = category_dao
        self._log = structlog.get_logger(__name__)

    def get_all(self) -> list[Category]:
        return self._dao.get_all()

    def get_by_id(self, category_id: int) -> Category | None:
        return self._dao.get_by_id(category_id)

    def get_by_type(self, type_: str) -> list[Category]:
        self._validate_type(type_)
        return self._dao.get_by_type(type_)

    def get_parent_categories(self) -> list[Category]:
        return self._dao.get_parents()

    def get_subcategories(self, parent_id: int) -> list[Category]:
        return self._dao.get_children(parent_id)

    def get_categories_with_subs(self) -> list[dict]:
        """Top-level categories, each with its subcategories attached."""
        return [
            {"category": parent, "subcategories": self._dao.get_children(parent.id)}
            for parent in self._dao.get_parents()
        ]

    def create(
        self,
        name: str,
        type_: str,
        color_hex: str = "#888888",
        parent_id: int | None = None,
    ) -> Category:
        name = self._clean_name(name)
        self._validate_type(type_)
        self._validate_color(color_hex)
        with self._db.transaction():
            self._check_parent(parent_id, type_)
            cat = self._dao.create(name, type_, color_hex, parent_id)
        self._log.info(
            "category_created", category_id=cat.id, type=cat.type, parent_id=parent_id
        )
        return cat

    def update(
        self,
        category_id: int,
        name: str | None = None,
        type_: str | None = None,
        color_hex: str | None = None,
        parent_id: int | None = None,
    ) -> Category:
        """Patch a category; arguments left as None keep their current value.

        A category cannot be reparented here; parent_id only confirms the
        existing parent when given.
        """
        with self._db.transaction():
            cat = self._dao.get_by_id(category_id)
            if cat is None:
                raise NotFoundError("Category", category_id)
            name = self._clean_name(name) if name is not None else cat.name
            type_ = type_ if type_ is not None else cat.type
            color_hex = color_hex if color_hex is not None else cat.color_hex
            self._validate_type(type_)
            self._validate_color(color_hex)
            if parent_id is not None and parent_id != cat.parent_id:
                if parent_id == category_id:
                    raise ValueError("A category cannot be its own parent.")
                if self._dao.get_children(category_id):
                    raise ValueError("A category with subcategories cannot become one.")
                self._check_parent(parent_id, type_)
            else:
                parent_id = cat.parent_id
            updated = self._dao.update(category_id, name, type_, color_hex, parent_id)
        self._log.info("category_updated", category_id=category_id)
        return updated

    def delete(self, category_id: int):
        """Delete subcategories first, then the category itself."""
        with self._db.transaction():
            if self._dao.get_by_id(category_id) is None:
                raise NotFoundError("Category", category_id)
            children = self._dao.get_children(category_id)
            for child in children:
                self._dao.detach_and_delete(child.id)
            self._dao.detach_and_delete(category_id)
        self._log.info(
            "category_deleted",
            category_id=category_id,
            subcategories_removed=[c.id for c in children],
        )

    def seed_default_categories(self) -> int:
        """Insert the default catalogue when the table is empty. Returns rows added."""
        with self._db.transaction():
            if self._dao.count() > 0:
                return 0
            for cat in DEFAULT_CATEGORIES:
                self._dao.create(cat["name"], cat["type"], cat["color_hex"])
        self._log.info("default_categories_seeded", count=len(DEFAULT_CATEGORIES))
        return len(DEFAULT_CATEGORIES)

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _check_parent(self, parent_id: int | None, type_: str):
        if parent_id is None:
            return
        parent = self._dao.get_by_id(parent_id)
        if parent is None:
            raise ConstraintViolationError("Category", parent_id, "parent_id")
        if parent.parent_id is not None:
            raise ValueError("Subcategories cannot have subcategories of their own.")
        if parent.type != type_:
            raise ValueError("A subcategory must have the same type as its parent.")

    @staticmethod
    def _clean_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        return name

    @staticmethod
    def _validate_type(type_: str):
        if type_ not in CATEGORY_TYPES:
            raise ValueError(
                f"Invalid category type '{type_}'. Must be one of: {', '.join(CATEGORY_TYPES)}."
            )

    @staticmethod
    def _validate_color(color_hex: str):
        if not _HEX_COLOR.match(color_hex or ""):
            raise ValueError(f"Invalid colour '{color_hex}'. Use #RRGGBB.")
