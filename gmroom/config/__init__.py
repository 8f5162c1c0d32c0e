# Configuration
from .codec_config import CodecConfig, load_config
