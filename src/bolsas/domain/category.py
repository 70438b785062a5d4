"""Category domain service."""

from typing import Optional
from bolsas.database.base import Database
from bolsas.domain.entities import Category as CategoryEntity, CategoryType
from bolsas.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_path_not_found,
)


class CategoryService:
    """Service for managing categories and their subcategories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        name: str,
        parent_path: Optional[str] = None,
        category_type: Optional[CategoryType] = None,
        color: Optional[str] = None,
    ) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Hogar"); the
                new category becomes a subcategory of it
            category_type: Optional income/expense classification. A
                subcategory inherits its parent's type when not given.
            color: Optional display color

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty or contains the path separator
            NotFoundError: If parent category doesn't exist
            ConflictError: If a sibling with the same name exists
        """
        name = name.strip()
        if not name or ">" in name:
            raise ValidationError("Category name must be non-empty and cannot contain '>'")

        parent_id = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id
            if category_type is None:
                category_type = parent.category_type

        full_path = f"{parent_path} > {name}" if parent_path else name
        if self.db.get_category_by_path(full_path) is not None:
            raise ConflictError(f"Category '{full_path}' already exists")

        return self.db.create_category(
            name=name,
            parent_id=parent_id,
            category_type=CategoryType(category_type).value if category_type else None,
            color=color,
        )

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[CategoryEntity]:
        """Get category by path.

        Args:
            path: Category path (e.g., "Hogar > Renta")

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category_by_path(path)

    def require_category_by_path(self, path: str) -> CategoryEntity:
        """Get category by path or raise NotFoundError."""
        category = self.db.get_category_by_path(path)
        if category is None:
            raise NotFoundError(category_path_not_found(path))
        return category

    def list_categories(self, parent_id: Optional[int] = None) -> list[CategoryEntity]:
        """List categories under parent_id (top level when None)."""
        return self.db.list_categories(parent_id=parent_id)

    def get_category_tree(self) -> list[dict]:
        """Get full category tree.

        Returns:
            List of root categories with nested children
        """
        return self.db.get_category_tree()

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Hogar > Renta")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))

    def resolve_path(self, path: str) -> tuple[int, Optional[int]]:
        """Split a category path into (category_id, subcategory_id).

        A top-level path resolves to its own id and no subcategory. A
        deeper path resolves to its top-level ancestor plus itself.
        """
        category = self.require_category_by_path(path)
        if category.parent_id is None:
            return category.id, None

        root = category
        while root.parent_id is not None:
            parent = self.get_category(root.parent_id)
            if parent is None:
                break
            root = parent
        return root.id, category.id
