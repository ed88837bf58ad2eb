# -*- coding: utf-8 -*-
# Copyright 2014 MMD Tools authors
# This file is part of MMD Tools.

# Modified by Kafuji Sato
# Changes:
# - Split the sequential reader out of the PMX module so the VMD loader can share it.
# - Streams accept an already-open binary file object as well as a path.
# - Index sizes are passed explicitly; vertex indexes of width 4 are signed.
# - Short reads raise TruncatedFileError instead of leaking struct.error.
from __future__ import annotations

import os
import struct
from typing import BinaryIO, Tuple, Union

Source = Union[str, os.PathLike, BinaryIO]


##################################################################################
class InvalidFileError(Exception):
    """The stream is not a file of the expected format (bad magic)."""
    pass
class UnsupportedVersionError(InvalidFileError):
    pass

class CorruptedFileError(ValueError):
    """The stream claims the right format but cannot be decoded."""
    pass
class InvalidEnumError(CorruptedFileError):
    pass
class TruncatedFileError(CorruptedFileError):
    pass


class Encoding:
    _MAP = [
        (0, 'utf-16-le'),
        (1, 'utf-8'),
        ]

    def __init__(self, arg):
        self.index = 0
        self.charset = ''
        t = None
        if isinstance(arg, str):
            t = [x for x in self._MAP if x[1] == arg]
            if len(t) == 0:
                raise InvalidEnumError('invalid charset %s'%arg)
        elif isinstance(arg, int):
            t = [x for x in self._MAP if x[0] == arg]
            if len(t) == 0:
                raise InvalidEnumError('invalid text encoding %d'%arg)
        else:
            raise ValueError('invalid argument type')
        self.index, self.charset = t[0]

    def __eq__(self, other):
        return isinstance(other, Encoding) and other.index == self.index

    def __repr__(self):
        return '<Encoding charset %s>'%self.charset


def decode_text(raw: bytes, encoding: Encoding) -> str:
    """
    Decode a raw text run to str.
    UTF-16 runs of odd length get one zero byte appended, so the last code unit
    keeps its low byte. Broken sequences decode to U+FFFD.
    """
    if encoding.charset == 'utf-16-le' and len(raw) % 2:
        raw += b'\x00'
    return str(raw, encoding.charset, errors='replace')


_SIGNED_INDEX = { 1 :"<b", 2 :"<h", 4 :"<i"}
_VERTEX_INDEX = { 1 :"<B", 2 :"<H", 4 :"<i"} # vertex counts may exceed signed range, -1 is never used
_READ_CHUNK = 1 << 20 # larger reads go in chunks so a corrupt size cannot allocate more than the file holds


class FileReadStream:
    def __init__(self, source: Source, header=None):
        if isinstance(source, (str, os.PathLike)):
            self.__path = os.fspath(source)
            self.__fin = open(self.__path, 'rb')
            self.__owned = True
        else:
            self.__path = getattr(source, 'name', '')
            if not isinstance(self.__path, str):
                self.__path = ''
            self.__fin = source
            self.__owned = False
        self.__header = header

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def path(self) -> str:
        return self.__path

    def header(self):
        if self.__header is None:
            raise RuntimeError('header has not been read yet')
        return self.__header

    def setHeader(self, header):
        self.__header = header

    def close(self):
        # Borrowed file objects belong to the caller
        if self.__fin is not None and self.__owned:
            self.__fin.close()
        self.__fin = None

    def __readChunked(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self.__fin.read(min(remaining, _READ_CHUNK))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def __read(self, size: int) -> bytes:
        if size > _READ_CHUNK:
            buf = self.__readChunked(size)
        else:
            buf = self.__fin.read(size)
        if len(buf) != size:
            raise TruncatedFileError('unexpected end of file at offset %d: %d bytes requested, %d available'%(
                self.current_pos() - len(buf), size, len(buf)))
        return buf

    def __unpack(self, fmt: str, size: int):
        v, = struct.unpack(fmt, self.__read(size))
        return v

    # READ methods for indexes
    def readIndex(self, size: int) -> int:
        """Signed index of 1, 2 or 4 bytes. -1 means no reference."""
        if size not in _SIGNED_INDEX:
            raise InvalidEnumError('invalid index size %s'%str(size))
        return self.__unpack(_SIGNED_INDEX[size], size)

    def readVertexIndex(self, size: int) -> int:
        """Vertex index: unsigned for 1 and 2 bytes, signed for 4 bytes."""
        if size not in _VERTEX_INDEX:
            raise InvalidEnumError('invalid vertex index size %s'%str(size))
        return self.__unpack(_VERTEX_INDEX[size], size)

    # READ methods for general types
    def readInt(self) -> int:
        return self.__unpack('<i', 4)

    def readCount(self) -> int:
        """Element count of a table. Counts are signed on disk; a negative one is corrupt."""
        count = self.readInt()
        if count < 0:
            raise CorruptedFileError("negative element count %d at offset %d"%(count, self.current_pos() - 4))
        return count

    def readUnsignedShort(self) -> int:
        return self.__unpack('<H', 2)

    def readStr(self) -> str:
        length = self.readInt()
        if length < 0:
            raise CorruptedFileError('negative text length %d'%length)
        if length == 0:
            return ''
        return decode_text(self.__read(length), self.header().encoding)

    def readFloat(self) -> float:
        return self.__unpack('<f', 4)

    def readVector(self, size: int) -> Tuple[float, ...]:
        return struct.unpack('<'+'f'*size, self.__read(4*size))

    def readByte(self) -> int:
        return self.__unpack('<B', 1)

    def readSignedByte(self) -> int:
        return self.__unpack('<b', 1)

    def readBytes(self, length: int) -> bytes:
        """Raw read, may return fewer bytes than requested at end of file."""
        return self.__fin.read(length)

    def readExactBytes(self, length: int) -> bytes:
        return self.__read(length)

    def current_pos(self) -> int:
        return self.__fin.tell()
