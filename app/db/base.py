from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

# 64-bit identifiers; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntId = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass
