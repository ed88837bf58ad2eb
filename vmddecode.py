# -*- coding: utf-8 -*-
"""VMD motion loader.

Four keyframe tables (bone, morph, camera, light) of fixed-size packed records.
Each table is read in one block and sorted by frame; frames that compare equal
keep their file order.

Names are fixed-width Shift_JIS fields, cut at the first NUL.
"""
from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TypeVar

from mmdstream import (CorruptedFileError, FileReadStream, InvalidFileError,
                       Source, TruncatedFileError)

__all__ = [
    "BoneKeyframe", "MorphKeyframe", "CameraKeyframe", "LightKeyframe", "AnimationData", "load",
    "InvalidFileError", "CorruptedFileError", "TruncatedFileError",
]

VMD_SIGN_V1 = b'Vocaloid Motion Data file'
VMD_SIGN_V2 = b'Vocaloid Motion Data 0002'
HEADER_SIZE = 30
NAME_ENCODING = 'cp932'

_BONE_FORMAT = struct.Struct('<15sI3f4f64s')
_MORPH_FORMAT = struct.Struct('<15sIf')
_CAMERA_FORMAT = struct.Struct('<If3f3f24sIB')
_LIGHT_FORMAT = struct.Struct('<I3f3f')


def _decode_name(raw: bytes) -> str:
    return raw.split(b'\x00', 1)[0].decode(NAME_ENCODING, errors='replace')


@dataclass
class BoneKeyframe:
    """A single bone keyframe."""

    bone_name: str
    frame: int
    location: tuple[float, float, float]
    rotation: tuple[float, float, float, float]  # quaternion (x, y, z, w)
    interpolation: bytes  # 64 bytes of Bezier control points

    @classmethod
    def unpack(cls, name, frame, lx, ly, lz, rx, ry, rz, rw, interpolation) -> BoneKeyframe:
        return cls(_decode_name(name), frame, (lx, ly, lz), (rx, ry, rz, rw), interpolation)


@dataclass
class MorphKeyframe:
    morph_name: str
    frame: int
    weight: float

    @classmethod
    def unpack(cls, name, frame, weight) -> MorphKeyframe:
        return cls(_decode_name(name), frame, weight)


@dataclass
class CameraKeyframe:
    frame: int
    distance: float
    location: tuple[float, float, float]
    rotation: tuple[float, float, float]  # Euler angles (radians)
    interpolation: bytes  # 24 bytes
    view_angle: int  # degrees
    orthographic: bool  # the file stores 0 for perspective on

    @classmethod
    def unpack(cls, frame, distance, lx, ly, lz, rx, ry, rz, interpolation, view_angle, ortho) -> CameraKeyframe:
        return cls(frame, distance, (lx, ly, lz), (rx, ry, rz), interpolation, view_angle, ortho != 0)


@dataclass
class LightKeyframe:
    frame: int
    color: tuple[float, float, float]
    location: tuple[float, float, float]

    @classmethod
    def unpack(cls, frame, r, g, b, x, y, z) -> LightKeyframe:
        return cls(frame, (r, g, b), (x, y, z))


@dataclass
class AnimationData:
    """Parsed VMD motion data."""

    model_name: str
    version: int = 2
    keyframes: List[BoneKeyframe] = field(default_factory=list)
    morphs: List[MorphKeyframe] = field(default_factory=list)
    cameras: List[CameraKeyframe] = field(default_factory=list)
    lights: List[LightKeyframe] = field(default_factory=list)


K = TypeVar('K')

def _read_keyframes(fs: FileReadStream, fmt: struct.Struct, make: Callable[..., K], label: str) -> List[K]:
    head = fs.readBytes(4)
    if not head:
        # Older writers stop after the last table they use
        logging.debug(f"No {label} table, stream ends")
        return []
    if len(head) != 4:
        raise TruncatedFileError(f'unexpected end of file in {label} count')
    count, = struct.unpack('<I', head)

    data = fs.readExactBytes(count * fmt.size)
    keyframes = [make(*values) for values in fmt.iter_unpack(data)]
    keyframes.sort(key=lambda k: k.frame) # list.sort is stable
    logging.debug(f"Loaded {len(keyframes)} {label} keyframes")
    return keyframes


def load(source: Source) -> Optional[AnimationData]:
    """
    Load a VMD motion from a path or an open binary stream.
    Returns None when the header is not a known VMD signature.
    """
    with FileReadStream(source) as fs:
        ident = fs.readBytes(HEADER_SIZE).split(b'\x00', 1)[0]
        if ident == VMD_SIGN_V1:
            version = 1
        elif ident == VMD_SIGN_V2:
            version = 2
        else:
            logging.info(f"Not a VMD file ({fs.path() or 'stream'}): {ident!r}")
            return None

        name_size = 10 if version == 1 else 20
        anim = AnimationData(model_name=_decode_name(fs.readExactBytes(name_size)), version=version)

        try:
            anim.keyframes = _read_keyframes(fs, _BONE_FORMAT, BoneKeyframe.unpack, "bone")
            anim.morphs = _read_keyframes(fs, _MORPH_FORMAT, MorphKeyframe.unpack, "morph")
            anim.cameras = _read_keyframes(fs, _CAMERA_FORMAT, CameraKeyframe.unpack, "camera")
            anim.lights = _read_keyframes(fs, _LIGHT_FORMAT, LightKeyframe.unpack, "light")
        except struct.error as e:
            raise CorruptedFileError(f"Corrupted file: {e}") from e

        return anim
