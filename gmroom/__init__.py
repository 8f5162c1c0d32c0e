"""
GameMaker Room Tools

Load, inspect and save the rooms of GameMaker FORM data files.

- format: version context, pools, records shared by every chunk
- room: room model, reader, writer, counting and resolution
- container: whole-file GameDataReader / GameDataWriter
- config: gmroom.ini settings
"""

__version__ = "0.1.0"
