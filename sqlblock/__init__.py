"""A small SQL statement builder with just enough ORM around it.

Tables are declared as classes, and statements are built out of blocks
chained onto select(), insert(), update() or delete(). A statement compiles
to SQL plus bound arguments for PostgreSQL, SQLite or MySQL.

This is not trying to be SQLAlchemy. There's no session, no identity map and
no lazy loading, just statements and the rows they give back.
"""

from .errors import *
from .dialects import *
from .expressions import Raw, raw, and_, or_, not_
from .column import *
from .table import *
from .query import *
from .misc import *

__author__ = 'sqlblock contributors'
__license__ = 'MIT'
__version__ = '0.1.0'
