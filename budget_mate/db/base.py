# db/base.py

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase

# Define the common base class for all models
class Base(AsyncAttrs, DeclarativeBase):
    pass
