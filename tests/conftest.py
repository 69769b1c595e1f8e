from pytest import fixture

from map_assistant.utils.features import FeatureRegistry


@fixture
def registry():
    return FeatureRegistry()
