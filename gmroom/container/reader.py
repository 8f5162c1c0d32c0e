"""
Data File Reader

Loads a FORM data file into GameData.

Load order:
1. Chunk table
2. STRG, the string pool every string field points into
3. GEN8, which seeds the version (raised to the configured minimum)
4. Named-resource chunks, as stubs references can resolve against
5. ROOM, read with a fresh CodecContext so only room objects are counted
6. Resolution pass over the refs recorded in step 5

Chunks the codec does not model are kept as opaque bytes and written back in
their original position.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from gmroom.config.codec_config import CodecConfig
from gmroom.constants import GENERAL_INFO_CHUNK, POOL_CHUNKS, ROOMS_CHUNK, SEQUENCES_CHUNK, STRINGS_CHUNK
from gmroom.errors import CorruptDataError
from gmroom.format.chunks import ChunkReader, GeneralInfo, read_general_info, read_named_pool, read_string_pool
from gmroom.format.context import CodecContext
from gmroom.format.pools import ResourcePools, StringPool
from gmroom.format.version import VersionContext
from gmroom.room.data_types import Room
from gmroom.room.reader import RoomReader
from gmroom.room.resolve import ResolutionReport, resolve_rooms
from gmroom.utils import log, logDebug, logWarning
from gmroom.utils.binary import BinaryCursor

# Chunks the codec rebuilds from the model on save
MODELED_CHUNKS = {GENERAL_INFO_CHUNK, STRINGS_CHUNK, ROOMS_CHUNK, *POOL_CHUNKS.values()}


@dataclass
class GameData:
    """A loaded data file."""
    general_info: GeneralInfo = field(default_factory=GeneralInfo)
    version: VersionContext = field(default_factory=lambda: VersionContext(2))
    strings: StringPool = field(default_factory=StringPool)
    pools: ResourcePools = field(default_factory=ResourcePools)
    rooms: List[Room] = field(default_factory=list)

    # Chunk names in file order, and the bodies of chunks the codec does not model
    chunk_order: List[str] = field(default_factory=list)
    opaque_chunks: Dict[str, bytes] = field(default_factory=dict)

    # Addressable room objects materialized by the load
    room_object_count: int = 0
    resolution: Optional[ResolutionReport] = None

    @property
    def has_sequence_chunk(self) -> bool:
        return SEQUENCES_CHUNK in self.chunk_order or self.pools.has_pool('sequences')

    def room_by_name(self, name: str) -> Optional[Room]:
        for room in self.rooms:
            if room.name == name:
                return room
        return None


class GameDataReader:
    """
    Reader for FORM data files.

    Usage:
        data = GameDataReader.from_file("data.win")
        for room in data.rooms:
            print(room.name, len(room.layers))
    """

    def __init__(self, data: bytes, config: Optional[CodecConfig] = None, source: str = "<bytes>"):
        self.data = data
        self.config = config or CodecConfig()
        self.source = source

    @classmethod
    def from_file(cls, filepath: Union[str, Path], config: Optional[CodecConfig] = None) -> GameData:
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        with open(path, 'rb') as f:
            data = f.read()
        return cls(data, config, source=str(path)).load()

    @classmethod
    def from_bytes(cls, data: bytes, config: Optional[CodecConfig] = None) -> GameData:
        return cls(data, config).load()

    def load(self) -> GameData:
        data = self.data
        chunks = {}
        order = []
        for chunk in ChunkReader(data):
            if chunk.name in chunks:
                raise CorruptDataError(f"Duplicate chunk {chunk.name}", chunk.offset, "unique-chunks")
            chunks[chunk.name] = chunk
            order.append(chunk.name)
        log(f"Loaded {len(order)} chunks from {self.source}: {' '.join(order)}")

        if GENERAL_INFO_CHUNK not in chunks:
            raise CorruptDataError(f"Missing {GENERAL_INFO_CHUNK} chunk", None, "general-info")

        game = GameData(chunk_order=order)
        if STRINGS_CHUNK in chunks:
            game.strings = read_string_pool(data, chunks[STRINGS_CHUNK])
        game.general_info = read_general_info(data, chunks[GENERAL_INFO_CHUNK], game.strings)
        game.version = self.config.version_context(game.general_info.version_context())
        logDebug(f"Version {game.version!r} (declared {game.general_info.version_context()})")

        for kind, chunk_name in POOL_CHUNKS.items():
            if chunk_name in chunks:
                pool = read_named_pool(data, chunks[chunk_name], kind, game.strings)
                game.pools.add_pool(pool)
                logDebug(f"{chunk_name}: {len(pool)} {kind}")

        for name in order:
            if name not in MODELED_CHUNKS:
                chunk = chunks[name]
                game.opaque_chunks[name] = data[chunk.body_offset:chunk.end]
                logWarning(f"Chunk {name} is not modeled, kept as {chunk.size} opaque bytes")

        if ROOMS_CHUNK in chunks:
            ctx = CodecContext(game.version, game.strings, has_sequence_chunk=SEQUENCES_CHUNK in chunks)
            game.rooms = RoomReader(ctx).read_rooms(BinaryCursor(data, chunks[ROOMS_CHUNK].body_offset))
            game.room_object_count = ctx.object_count
            log(f"Loaded {len(game.rooms)} rooms ({game.room_object_count} objects)")

            if self.config.resolve_references:
                game.resolution = resolve_rooms(game.rooms, ctx.refs, game.pools)

        if game.version.upgrades:
            log(f"Detected version {game.version} (file declares "
                f"{'.'.join(str(p) for p in game.version.upgrades[0][0])})")
        return game
