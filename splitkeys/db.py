import sqlalchemy.types as types
from sqlalchemy import create_engine
from sqlalchemy import Column, Integer
from sqlalchemy.orm import declarative_base, declared_attr, sessionmaker
from sqlalchemy.pool import StaticPool

from . import util


class Base(object):
    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    id = Column(Integer, primary_key=True)


Base = declarative_base(cls=Base)


def init(url: str = 'sqlite://') -> sessionmaker:
    if url in ('sqlite://', 'sqlite:///:memory:'):
        # a single shared connection keeps the in-memory database alive across threads
        engine = create_engine(url, connect_args={'check_same_thread': False}, poolclass=StaticPool)
    else:
        engine = create_engine(url)

    Base.metadata.create_all(engine)
    return sessionmaker(engine, expire_on_commit=False)


class CurvePoint(types.TypeDecorator):
    impl = types.LargeBinary
    cache_ok = True
    python_type = tuple  # optimized G1 point (x, y, z)

    def process_bind_param(self, value, dialect):
        if value is not None:
            return util.curve_point_to_bytes(value)

    def process_result_value(self, value, dialect):
        if value is not None:
            return util.bytes_to_curve_point(value)
