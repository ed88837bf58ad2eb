"""Little-endian writer used by the tests to build synthetic PMX and VMD streams."""
import io
import struct
from typing import Callable, Iterable, Sequence

SIZES_4 = (4, 4, 4, 4, 4, 4)
UTF16, UTF8 = 0, 1


class StreamWriter:
    def __init__(self, charset='utf-8'):
        self.__fout = io.BytesIO()
        self.charset = charset

    def __writeIndex(self, index, size, typedict):
        if size in typedict :
            self.__fout.write(struct.pack(typedict[size], int(index)))
        else:
            raise ValueError('invalid data size %s'%str(size))

    def writeIndex(self, index, size):
        self.__writeIndex(index, size, { 1 :"<b", 2 :"<h", 4 :"<i"})

    def writeVertexIndex(self, index, size):
        self.__writeIndex(index, size, { 1 :"<B", 2 :"<H", 4 :"<i"})

    def writeInt(self, v):
        self.__fout.write(struct.pack('<i', int(v)))

    def writeUnsignedInt(self, v):
        self.__fout.write(struct.pack('<I', int(v)))

    def writeUnsignedShort(self, v):
        self.__fout.write(struct.pack('<H', int(v)))

    def writeStr(self, v):
        data = v.encode(self.charset)
        self.writeInt(len(data))
        self.__fout.write(data)

    def writeFloat(self, v):
        self.__fout.write(struct.pack('<f', float(v)))

    def writeVector(self, v):
        self.__fout.write(struct.pack('<'+'f'*len(v), *v))

    def writeByte(self, v):
        self.__fout.write(struct.pack('<B', int(v)))

    def writeSignedByte(self, v):
        self.__fout.write(struct.pack('<b', int(v)))

    def writeBytes(self, v):
        self.__fout.write(v)

    def getvalue(self) -> bytes:
        return self.__fout.getvalue()

    def stream(self) -> io.BytesIO:
        return io.BytesIO(self.getvalue())


def f32(v: float) -> float:
    """Value as it comes back from a 4 byte float field."""
    return struct.unpack('<f', struct.pack('<f', v))[0]


def write_pmx_header(w: StreamWriter, encoding=UTF8, additional_uvs=0, sizes: Sequence[int] = SIZES_4,
                     sign=b'PMX ', version=2.0):
    w.writeBytes(sign)
    w.writeFloat(version)
    w.writeByte(8)
    w.writeByte(encoding)
    w.writeByte(additional_uvs)
    for size in sizes:
        w.writeByte(size)


Record = Callable[[StreamWriter], None]

def build_pmx(*, encoding=UTF8, additional_uvs=0, sizes: Sequence[int] = SIZES_4,
              name='', name_e='', comment='', comment_e='',
              vertices: Iterable[Record] = (), faces: Iterable[int] = (), textures: Iterable[str] = (),
              materials: Iterable[Record] = (), bones: Iterable[Record] = (), morphs: Iterable[Record] = (),
              trailer=b'') -> io.BytesIO:
    """Complete PMX stream. Record writers receive the writer and emit one record body each."""
    w = StreamWriter('utf-16-le' if encoding == UTF16 else 'utf-8')
    write_pmx_header(w, encoding, additional_uvs, sizes)
    w.writeStr(name)
    w.writeStr(name_e)
    w.writeStr(comment)
    w.writeStr(comment_e)

    vertices = list(vertices)
    w.writeInt(len(vertices))
    for record in vertices:
        record(w)

    faces = list(faces)
    w.writeInt(len(faces))
    for f in faces:
        w.writeVertexIndex(f, sizes[0])

    textures = list(textures)
    w.writeInt(len(textures))
    for t in textures:
        w.writeStr(t)

    for table in (materials, bones, morphs):
        table = list(table)
        w.writeInt(len(table))
        for record in table:
            record(w)

    w.writeBytes(trailer)
    return w.stream()


def vmd_header(version=2, model_name=b'model') -> bytes:
    sign = b'Vocaloid Motion Data 0002' if version == 2 else b'Vocaloid Motion Data file'
    name_size = 20 if version == 2 else 10
    return sign.ljust(30, b'\x00') + model_name.ljust(name_size, b'\x00')


def bone_keyframe(name: bytes, frame: int, location=(0.0, 0.0, 0.0), rotation=(0.0, 0.0, 0.0, 1.0),
                  interpolation=bytes(64)) -> bytes:
    return struct.pack('<15sI3f4f64s', name, frame, *location, *rotation, interpolation)


def morph_keyframe(name: bytes, frame: int, weight: float) -> bytes:
    return struct.pack('<15sIf', name, frame, weight)


def camera_keyframe(frame: int, distance=-45.0, location=(0.0, 10.0, 0.0), rotation=(0.0, 0.0, 0.0),
                    interpolation=bytes(24), view_angle=30, ortho=0) -> bytes:
    return struct.pack('<If3f3f24sIB', frame, distance, *location, *rotation, interpolation, view_angle, ortho)


def light_keyframe(frame: int, color=(0.6, 0.6, 0.6), location=(-0.5, -1.0, 0.5)) -> bytes:
    return struct.pack('<I3f3f', frame, *color, *location)


def table(records: Sequence[bytes]) -> bytes:
    return struct.pack('<I', len(records)) + b''.join(records)
