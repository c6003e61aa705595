"""Shared fixtures: one in-memory planning session per test."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from allocator import Resolved, divide
from models import Base, Ipam


@pytest.fixture()
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with sessionmaker(bind=engine)() as session:
        yield session
    engine.dispose()


@pytest.fixture()
def ipam(session):
    ipam = Ipam(name="global", regions=["us-east-1"])
    session.add(ipam)
    return ipam


@pytest.fixture()
def scope(ipam):
    return ipam.add_scope("corp")


@pytest.fixture()
def root_pool(scope):
    return scope.add_pool("root", locale="us-west-2", provisioned_cidrs=["10.0.0.0/8"])


class ResolvingPartitioner:
    """Stands in for the provisioning layer: resolves handles, then splits."""

    def __init__(self, bindings):
        self.bindings = bindings
        self.requests = []

    def partition_equally(self, parent, count, prefixlen):
        self.requests.append((parent, count, prefixlen))
        if not parent.is_resolved:
            parent = Resolved.parse(self.bindings[parent.handle])
        return divide(parent, count, prefixlen)

    def select_nth(self, items, index):
        return items[index]
