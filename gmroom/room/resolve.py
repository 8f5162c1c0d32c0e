"""
Reference Resolution

Runs once per load, after every pool and room has been read:

- Each ResourceRef recorded by the reader is checked against its pool and
  marked RESOLVED, NONE (-1) or DANGLING. Dangling refs keep their ID so the
  file is written back unchanged; they are reported, never fatal.
- Each instances layer gets its `instances` list filled from the room's
  GameObjects. IDs the room does not define get a placeholder GameObject
  with `nonexistent` set, so the layer still round-trips.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from gmroom.format.pools import RefStatus, ResourcePools, ResourceRef
from gmroom.room.data_types import GameObject, Room
from gmroom.utils import logDebug, logWarning


@dataclass
class ResolutionReport:
    """Outcome of one resolution pass."""
    resolved: int = 0
    null: int = 0
    dangling: Dict[str, List[int]] = field(default_factory=dict)  # pool -> IDs, in file order
    placeholders: int = 0

    @property
    def dangling_count(self) -> int:
        return sum(len(ids) for ids in self.dangling.values())

    @property
    def total(self) -> int:
        return self.resolved + self.null + self.dangling_count


def resolve_references(refs: Iterable[ResourceRef], pools: ResourcePools,
                       report: ResolutionReport = None) -> ResolutionReport:
    """Bind refs to their pools; logs one warning per pool with dangling refs."""
    report = report or ResolutionReport()
    dangling = defaultdict(list)
    for ref in refs:
        if ref.is_null:
            ref.status = RefStatus.NONE
            report.null += 1
        elif pools.lookup(ref) is not None:
            ref.status = RefStatus.RESOLVED
            report.resolved += 1
        else:
            ref.status = RefStatus.DANGLING
            dangling[ref.pool].append(ref.id)

    for pool, ids in dangling.items():
        shown = ", ".join(str(i) for i in ids[:8]) + (", ..." if len(ids) > 8 else "")
        logWarning(f"{len(ids)} dangling {pool} reference(s) (IDs {shown})")
        report.dangling.setdefault(pool, []).extend(ids)
    return report


def resolve_room_instances(room: Room) -> int:
    """
    Fill instances layers of a room with its GameObjects.

    Returns:
        Number of placeholder objects created
    """
    by_id = {}
    for game_object in room.game_objects:
        by_id.setdefault(game_object.instance_id, game_object)

    placeholders = 0
    for layer in room.layers:
        data = layer.instances_data
        if data is None:
            continue
        instances = []
        for instance_id in data.instance_ids:
            game_object = by_id.get(instance_id)
            if game_object is None:
                game_object = GameObject(instance_id=instance_id, nonexistent=True)
                placeholders += 1
            instances.append(game_object)
        data.instances = instances
        data.resolved = True

    if placeholders:
        logWarning(f"Room {room.name}: {placeholders} layer instance(s) missing from the room, "
                   f"placeholders created")
    else:
        logDebug(f"Room {room.name}: layer instances resolved")
    return placeholders


def resolve_rooms(rooms: Iterable[Room], refs: Iterable[ResourceRef], pools: ResourcePools) -> ResolutionReport:
    """Full resolution pass over the rooms of one load."""
    report = resolve_references(refs, pools)
    for room in rooms:
        report.placeholders += resolve_room_instances(room)
    return report
