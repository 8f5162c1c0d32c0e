"""
FORM Data Files

- reader: GameDataReader, GameData
- writer: GameDataWriter

Usage:
    from gmroom.container import GameDataReader, GameDataWriter

    game = GameDataReader.from_file("data.win")
    game.rooms[0].caption = "Hello"
    GameDataWriter(game).write("data_modded.win")
"""

from .reader import GameData, GameDataReader
from .writer import GameDataWriter
