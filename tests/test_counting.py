"""Tests for the counting pass."""

import pytest

from conftest import load, make_game, serialize
from gmroom.room import (
    EffectProperty,
    Layer,
    LayerEffectData,
    LayerInstancesData,
    LayerType,
    Room,
    count_room_objects,
)

# rooms list + room + creation_code + 8 backgrounds and 8 views (each a list
# entry holding one ref) + empty game_objects and tiles lists
EMPTY_ROOM_OBJECTS = 1 + 1 + 1 + (1 + 8 * 2) + (1 + 8 * 2) + 1 + 1


def empty_room_file(version, layers=None, **kwargs):
    game = make_game(version, **kwargs)
    game.rooms = [Room(name="empty", layers=layers or [])]
    return serialize(game)


@pytest.mark.parametrize("version, extra", [
    ("1.4", 0),
    ("2.0", 1),        # layers list
    ("2.3", 2),        # layers list, sequences list
    ("2024.13", 3),    # plus instance creation order
])
def test_empty_room(version, extra):
    data = empty_room_file(version)
    assert count_room_objects(data) == EMPTY_ROOM_OBJECTS + extra
    assert load(data).room_object_count == EMPTY_ROOM_OBJECTS + extra


def test_layer_objects():
    layer = Layer(name="Instances", layer_type=LayerType.INSTANCES,
                  data=LayerInstancesData(instance_ids=[1, 2, 3]))
    data = empty_room_file("2022.1", layers=[layer])
    # layers list, sequences list, layer, effect property list, payload
    assert count_room_objects(data) == EMPTY_ROOM_OBJECTS + 5


def test_path_layer_has_no_payload():
    data = empty_room_file("2.3", layers=[Layer(name="Path", layer_type=LayerType.PATH)])
    assert count_room_objects(data) == EMPTY_ROOM_OBJECTS + 3


def test_effect_layer_payload_counted_before_2022_1():
    properties = [EffectProperty(name="g_Strength", value="1")]
    before = empty_room_file("2.3", layers=[
        Layer(name="Effect", layer_type=LayerType.EFFECT,
              data=LayerEffectData(effect_type="_filter_blur", properties=properties))])
    # layer, payload, property list, property
    assert count_room_objects(before) == EMPTY_ROOM_OBJECTS + 2 + 4

    after = empty_room_file("2022.1", layers=[
        Layer(name="Effect", layer_type=LayerType.EFFECT, effect_type="_filter_blur",
              effect_properties=properties)])
    # layer, property list, property; no payload
    assert count_room_objects(after) == EMPTY_ROOM_OBJECTS + 2 + 3
    assert load(after).room_object_count == EMPTY_ROOM_OBJECTS + 2 + 3
