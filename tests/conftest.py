"""Shared pytest configuration and fixtures for tidyframe tests."""

import pandas as pd
import pytest

import tidyframe as tf
from tidyframe.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def penguins() -> tf.Table:
    return tf.load_penguins()


@pytest.fixture
def masses() -> tf.Table:
    return tf.Table({
        "species": ["A", "A", "B"],
        "mass": [10, 20, None],
    })


@pytest.fixture
def employees() -> pd.DataFrame:
    return pd.DataFrame({
        "name": ["Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Heidi"],
        "age": [30, 45, 28, 35, 50, 33, 29, 40],
        "dept": ["eng", "eng", "sales", "eng", "hr", "sales", "hr", "eng"],
        "salary": [90000, 120000, 65000, 95000, 80000, 70000, None, 110000],
    }).convert_dtypes()


@pytest.fixture
def wide_format() -> tf.Table:
    return tf.Table({
        "id": [1, 2],
        "x": [5, 7],
        "y": [1, 2],
    }, source_id="wide")


@pytest.fixture
def long_format() -> tf.Table:
    return tf.Table({
        "name": ["Alice", "Alice", "Alice", "Bob", "Bob"],
        "metric": ["q1", "q2", "q3", "q1", "q3"],
        "value": [10, 20, 30, 40, 60],
    }, source_id="long")
