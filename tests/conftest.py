import random

import pytest

from splitkeys import db
from splitkeys.committee import Committee
from splitkeys.minipool import MinipoolRegistry


def pytest_addoption(parser):
    parser.addoption("--num-members", action="store", default=10, type=int,
        help="number of committee members %(default)s")
    parser.addoption("--threshold", action="store", default=3, type=int,
        help="key share threshold %(default)s")
    parser.addoption("--seed", action="store", default=1337, type=int,
        help="seed for deterministic subset selection %(default)s")


@pytest.fixture
def num_members(request):
    return request.config.getoption("--num-members")


@pytest.fixture
def key_threshold(request):
    return request.config.getoption("--threshold")


@pytest.fixture
def rng(request):
    return random.Random(request.config.getoption("--seed"))


@pytest.fixture
def registry():
    return MinipoolRegistry(db.init())


@pytest.fixture
def committee(num_members):
    return Committee.with_size(num_members)
