"""Category domain service."""

import logging
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import Category, CategoryGroup, CategoryKind
from finledger.domain.errors import ConflictError, ForbiddenError, NotFoundError, not_owned
from finledger.domain.ownership import require_category
from finledger.domain.validation import enum_value, required_text

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        user_id: int,
        name: str,
        kind: CategoryKind = CategoryKind.EXPENSE,
        group_id: Optional[int] = None,
    ) -> int:
        """Create a category.

        Args:
            user_id: Owner
            name: Category name, unique per user and kind
            kind: income or expense
            group_id: Optional category group

        Returns:
            Category ID

        Raises:
            ConflictError: If a category with the same name and kind exists
        """
        name = required_text(name, "Category name")
        kind = enum_value(CategoryKind, kind, "category kind")
        if group_id is not None:
            self.get_group(user_id, group_id)
        for existing in self.db.list_categories(user_id, kind):
            if existing.name == name:
                raise ConflictError(f"{kind.value.capitalize()} category '{name}' already exists")

        category_id = self.db.create_category(user_id=user_id, name=name, kind=kind, group_id=group_id)
        logger.info("Created category %s '%s'", category_id, name)
        return category_id

    def get_category(self, user_id: int, category_id: int) -> Category:
        return require_category(self.db, user_id, category_id)

    def list_categories(self, user_id: int, kind: Optional[CategoryKind] = None) -> list[Category]:
        """List a user's categories.

        Args:
            user_id: Owner
            kind: Optional kind filter

        Returns:
            List of categories, by name
        """
        if kind is not None:
            kind = enum_value(CategoryKind, kind, "category kind")
        return self.db.list_categories(user_id, kind)

    def delete_category(self, user_id: int, category_id: int) -> None:
        """Delete a category. Its transactions become uncategorized."""
        require_category(self.db, user_id, category_id)
        with self.db.atomic():
            self.db.delete_category(category_id)
        logger.info("Deleted category %s", category_id)

    def create_group(self, user_id: int, name: str) -> int:
        name = required_text(name, "Group name")
        for existing in self.db.list_category_groups(user_id):
            if existing.name == name:
                raise ConflictError(f"Category group '{name}' already exists")
        return self.db.create_category_group(user_id=user_id, name=name)

    def get_group(self, user_id: int, group_id: int) -> CategoryGroup:
        group = self.db.get_category_group(group_id)
        if group is None:
            raise NotFoundError(f"Category group {group_id} not found")
        if group.user_id != user_id:
            raise ForbiddenError(not_owned("Category group", group_id))
        return group

    def list_groups(self, user_id: int) -> list[CategoryGroup]:
        return self.db.list_category_groups(user_id)
