"""SQLAlchemy ORM models.

Models represent database tables:
- users: accounts, password reset token fields
- user_hearts: hearted stores per user
- stores: listed businesses with location
- store_tags: tags carried by each store
- reviews: star ratings of stores
"""

from storedir.models.user import User, user_hearts
from storedir.models.store import Store, StoreTag
from storedir.models.review import Review

__all__ = ["Review", "Store", "StoreTag", "User", "user_hearts"]
