"""Sample streams and the decoders that produce them."""

from .decoders import DECODERS, Decoder, get_decoder
from .streams import ArraySampleStream, SampleStream, SoundFileStream

__all__ = [
    "ArraySampleStream",
    "Decoder",
    "DECODERS",
    "SampleStream",
    "SoundFileStream",
    "get_decoder",
]
