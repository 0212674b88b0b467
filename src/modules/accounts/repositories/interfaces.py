"""User, cart and wishlist repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import CartItem, User, WishlistItem


class IUserRepository(IRepository["User"]):
    """Repository contract for users (the checkout's User Store)."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[User]:
        """Retrieve a user with a row-level lock (SELECT FOR UPDATE).

        Serialises concurrent checkouts of the same user's cart.
        """


class ICartRepository(IRepository["CartItem"]):
    """Repository contract for cart lines."""

    @abstractmethod
    def lines_for(self, user_id: Any) -> List[CartItem]:
        """The user's cart lines in insertion order."""

    @abstractmethod
    def get_line(self, user_id: Any, line_id: Any) -> Optional[CartItem]:
        """A single line, only if it belongs to ``user_id``."""

    @abstractmethod
    def find_line(
        self, user_id: Any, product_id: Any, variant_id: Any, size_id: Any
    ) -> Optional[CartItem]:
        """The line holding exactly this product/variant/size, if any."""

    @abstractmethod
    def clear(self, user_id: Any) -> int:
        """Delete every line of the user's cart; return how many were removed."""


class IWishlistRepository(IRepository["WishlistItem"]):
    """Repository contract for wishlist entries."""

    @abstractmethod
    def items_for(self, user_id: Any) -> List[WishlistItem]:
        """The user's entries, oldest first, with product variants prefetched."""

    @abstractmethod
    def add(self, user_id: Any, product_id: Any) -> Tuple[WishlistItem, bool]:
        """Get or create the entry; the flag says whether it was created."""

    @abstractmethod
    def remove(self, user_id: Any, product_id: Any) -> bool:
        """Delete the user's entry for the product; False when there was none."""
