"""
Dog Spotter Backend — ORM Models
=================================

Importing this package registers every table on `Base.metadata`, which is
what Alembic autogenerate and the test schema fixture rely on.
"""

from dogspotter.models.user import User
from dogspotter.models.dog import Dog

__all__ = ["User", "Dog"]
