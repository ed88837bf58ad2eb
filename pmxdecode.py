# -*- coding: utf-8 -*-
# Copyright 2014 MMD Tools authors
# This file is part of MMD Tools.

# Modified by Kafuji Sato
# Changes:
# - Read-only decoder; cross references are kept as raw table indices and are not range checked.
# - Decoding stops after the morph table (display groups, rigid bodies, joints and soft bodies are not read).
# - Flat face index list, materials own a contiguous run of it through face_count.
# - Bone optional blocks are explicit optional fields; local axes are orthonormalized into a basis.
# - Morphs are one class per record shape (Group, Flip, Vertex, Bone, UV/UVA1-4, Material, Impulse).
# - load() accepts a path or an open binary stream and returns None for non PMX 2.0 input.
from __future__ import annotations

import logging
import struct
from typing import Iterator, List, Optional, Tuple

import numpy as np

from mmdstream import (CorruptedFileError, Encoding, FileReadStream,
                       InvalidEnumError, InvalidFileError, Source,
                       TruncatedFileError, UnsupportedVersionError)

__all__ = [
    "Header", "Model", "Vertex", "BoneWeight", "Material", "Coordinate", "Bone", "IK", "IKLink",
    "Morph", "GroupMorph", "FlipMorph", "VertexMorph", "BoneMorph", "UVMorph", "MaterialMorph", "ImpulseMorph",
    "GroupMorphOffset", "VertexMorphOffset", "BoneMorphOffset", "UVMorphOffset", "MaterialMorphOffset",
    "ImpulseMorphOffset", "TextureList", "load",
    "InvalidFileError", "UnsupportedVersionError", "CorruptedFileError", "InvalidEnumError", "TruncatedFileError",
]


class TextureList(list):
    """
    A list of texture paths with special handling.
        - [out of range index] (including -1) returns None instead of raising or wrapping around.
    Otherwise behaves like a normal list.
    """
    def __getitem__(self, index):
        if isinstance(index, int) and (index < 0 or index >= len(self)):
            return None
        return super().__getitem__(index)


class Header:
    PMX_SIGN = b'PMX '
    VERSION = 2.0
    def __init__(self):
        self.sign = self.PMX_SIGN
        self.version = 0.0
        self.data_size = 8 # informational only

        self.encoding = Encoding('utf-16-le')
        self.additional_uvs = 0

        # Validated when an index of that kind is read
        self.vertex_index_size = 1
        self.texture_index_size = 1
        self.material_index_size = 1
        self.bone_index_size = 1
        self.morph_index_size = 1
        self.rigid_index_size = 1

    def load(self, fs: FileReadStream):
        self.sign = fs.readBytes(4)
        if self.sign != self.PMX_SIGN:
            raise InvalidFileError('File signature is invalid: %r'%self.sign)
        self.version = fs.readFloat()
        if self.version != self.VERSION:
            raise UnsupportedVersionError('unsupported PMX version: %.1f'%self.version)

        self.data_size = fs.readByte()
        self.encoding = Encoding(fs.readByte())
        self.additional_uvs = fs.readByte()
        self.vertex_index_size = fs.readByte()
        self.texture_index_size = fs.readByte()
        self.material_index_size = fs.readByte()
        self.bone_index_size = fs.readByte()
        self.morph_index_size = fs.readByte()
        self.rigid_index_size = fs.readByte()

    def __repr__(self):
        return '<Header encoding %s, uvs %d, vtx %d, tex %d, mat %d, bone %d, morph %d, rigid %d>'%(
            str(self.encoding),
            self.additional_uvs,
            self.vertex_index_size,
            self.texture_index_size,
            self.material_index_size,
            self.bone_index_size,
            self.morph_index_size,
            self.rigid_index_size,
            )


################################################################################
# Model Root Class
################################################################################
class Model:
    """A decoded PMX model.

    The header carries two name/comment pairs. `name` and `comment` hold the
    first (local, usually Japanese) pair; `name_e` and `comment_e` hold the
    second (global, usually English) pair. Both pairs are kept as read.
    """
    def __init__(self):
        self.filepath = ""
        self.header: Optional[Header] = None
        self.version = 0.0

        self.name = ""
        self.name_e = ""
        self.comment = ""
        self.comment_e = ""

        self.vertices: List[Vertex] = []
        self.faces: List[int] = [] # flat vertex index list, 3 entries per triangle
        self.textures: TextureList = TextureList()
        self.materials: List[Material] = []
        self.bones: List[Bone] = []
        self.morphs: List[Morph] = []

    def load(self, fs: FileReadStream):
        if self.header is not None:
            raise ValueError("Model already loaded. Please create a new Model instance to load another file.")

        logging.debug("======== Loading Model ========")

        self.filepath = fs.path()
        self.header = fs.header()
        self.version = self.header.version

        self.name = fs.readStr()
        self.name_e = fs.readStr()

        self.comment = fs.readStr()
        self.comment_e = fs.readStr()

        ########################################
        # Load Vertices
        num_vertices = fs.readCount()
        for i in range(num_vertices):
            v = Vertex()
            v.load(fs)
            self.vertices.append(v)
        logging.debug(f"Loaded {len(self.vertices)} vertices")

        ########################################
        # Load Faces
        num_faces = fs.readCount()
        vertex_index_size = self.header.vertex_index_size
        self.faces = [fs.readVertexIndex(vertex_index_size) for _ in range(num_faces)]
        logging.debug(f"Loaded {len(self.faces)} face indices")

        ########################################
        # Load Textures
        num_textures = fs.readCount()
        for i in range(num_textures):
            self.textures.append(fs.readStr())
        logging.debug(f"Loaded {len(self.textures)} textures")

        ########################################
        # Load Materials
        num_materials = fs.readCount()
        for i in range(num_materials):
            m = Material()
            m.load(fs)
            self.materials.append(m)
        logging.debug(f"Loaded {len(self.materials)} materials")

        ########################################
        # Load Bones
        num_bones = fs.readCount()
        for i in range(num_bones):
            b = Bone()
            b.load(fs)
            self.bones.append(b)
        logging.debug(f"Loaded {len(self.bones)} bones")

        ########################################
        # Load Morphs
        num_morph = fs.readCount()
        for i in range(num_morph):
            self.morphs.append(Morph.create(fs))
        logging.debug(f"Loaded {len(self.morphs)} morphs")

        # Display groups, rigid bodies, joints and soft bodies follow; they are never read.

    def __repr__(self):
        return '<Model name %s, name_e %s, comment %s, comment_e %s, textures %s>'%(
            self.name,
            self.name_e,
            self.comment,
            self.comment_e,
            str(self.textures),
            )

    def texture_path(self, index: int) -> Optional[str]:
        """Texture path for a texture table reference, None for -1 or out of range."""
        return self.textures[index]

    def material_faces(self) -> Iterator[Tuple[Material, List[int]]]:
        """
        Yield each material with the run of face indices it owns.
        Runs are consecutive in material order; counts are not checked against len(faces).
        """
        segment_start = 0
        for mat in self.materials:
            segment_end = segment_start + mat.face_count
            yield mat, self.faces[segment_start:segment_end]
            segment_start = segment_end


class Vertex:
    __slots__ = ("co", "normal", "uv", "weight")

    def __init__(self):
        self.co = (0.0, 0.0, 0.0)
        self.normal = (0.0, 0.0, 0.0)
        self.uv = (0.0, 0.0)
        self.weight: BoneWeight = BoneWeight()

    def __repr__(self):
        return '<Vertex co %s, normal %s, uv %s, weight %s>'%(
            str(self.co),
            str(self.normal),
            str(self.uv),
            str(self.weight),
            )

    def load(self, fs: FileReadStream):
        self.co = fs.readVector(3)
        self.normal = fs.readVector(3)
        self.uv = fs.readVector(2)
        for i in range(fs.header().additional_uvs):
            fs.readVector(4) # additional UVs are not kept
        self.weight = BoneWeight()
        self.weight.load(fs)
        fs.readFloat() # edge scale, not kept


class BoneWeight:
    """Up to four bone/weight pairs. Unused slots hold bone -1 and weight 0."""
    __slots__ = ("type", "bones", "weights")
    BDEF1 = 0
    BDEF2 = 1
    BDEF4 = 2
    SDEF  = 3
    QDEF  = 4

    def __init__(self):
        self.type = self.BDEF1
        self.bones: List[int] = [-1, -1, -1, -1]
        self.weights: List[float] = [0.0, 0.0, 0.0, 0.0]

    def __repr__(self):
        return '<BoneWeight type %d, bones %s, weights %s>'%(self.type, str(self.bones), str(self.weights))

    def load(self, fs: FileReadStream):
        size = fs.header().bone_index_size
        self.type = fs.readByte()

        if self.type == self.BDEF1:
            self.bones[0] = fs.readIndex(size)
            self.weights[0] = 1.0
        elif self.type in (self.BDEF2, self.SDEF):
            self.bones[0] = fs.readIndex(size)
            self.bones[1] = fs.readIndex(size)
            self.weights[0] = fs.readFloat()
            self.weights[1] = 1.0 - self.weights[0]
            if self.type == self.SDEF:
                fs.readVector(3) # C
                fs.readVector(3) # R0
                fs.readVector(3) # R1
        elif self.type in (self.BDEF4, self.QDEF):
            for i in range(4):
                self.bones[i] = fs.readIndex(size)
            self.weights = list(fs.readVector(4))
        else:
            raise InvalidEnumError('invalid weight type %s'%str(self.type))


class Material:
    SPHERE_MODE_OFF = 0
    SPHERE_MODE_MULT = 1
    SPHERE_MODE_ADD = 2
    SPHERE_MODE_SUBTEX = 3

    # Drawing mode bits
    FLAG_DOUBLE_SIDED = 0x01
    FLAG_GROUND_SHADOW = 0x02
    FLAG_SELF_SHADOW_MAP = 0x04
    FLAG_SELF_SHADOW = 0x08
    FLAG_EDGE = 0x10
    FLAG_VERTEX_COLOR = 0x20
    FLAG_POINT_DRAWING = 0x40
    FLAG_LINE_DRAWING = 0x80

    def __init__(self):
        self.name = ""
        self.name_e = ""

        self.diffuse = (0.0, 0.0, 0.0, 0.0)
        self.specular = (0.0, 0.0, 0.0)
        self.shininess = 0.0
        self.ambient = (0.0, 0.0, 0.0)

        self.flags = 0

        self.edge_color = (0.0, 0.0, 0.0, 0.0)
        self.edge_size = 0.0

        self.texture_index = -1
        self.sphere_texture_index = -1
        self.sphere_texture_mode = self.SPHERE_MODE_OFF
        self.is_shared_toon_texture = False
        self.toon_index = -1 # texture table index, or shared toon number when is_shared_toon_texture

        self.comment = ''
        self.face_count = 0 # number of face index entries, not triangles

    def __repr__(self):
        return '<Material name %s, name_e %s, texture %d, sphere %d, toon %d (shared %s), face_count %d>'%(
            self.name,
            self.name_e,
            self.texture_index,
            self.sphere_texture_index,
            self.toon_index,
            str(self.is_shared_toon_texture),
            self.face_count,
        )

    @property
    def is_double_sided(self) -> bool:
        return bool(self.flags & self.FLAG_DOUBLE_SIDED)

    @property
    def enabled_drop_shadow(self) -> bool:
        return bool(self.flags & self.FLAG_GROUND_SHADOW)

    @property
    def enabled_self_shadow_map(self) -> bool:
        return bool(self.flags & self.FLAG_SELF_SHADOW_MAP)

    @property
    def enabled_self_shadow(self) -> bool:
        return bool(self.flags & self.FLAG_SELF_SHADOW)

    @property
    def enabled_toon_edge(self) -> bool:
        return bool(self.flags & self.FLAG_EDGE)

    @property
    def uses_vertex_color(self) -> bool:
        return bool(self.flags & self.FLAG_VERTEX_COLOR)

    @property
    def is_point_drawing(self) -> bool:
        return bool(self.flags & self.FLAG_POINT_DRAWING)

    @property
    def is_line_drawing(self) -> bool:
        return bool(self.flags & self.FLAG_LINE_DRAWING)

    def load(self, fs: FileReadStream):
        texture_index_size = fs.header().texture_index_size

        self.name = fs.readStr()
        self.name_e = fs.readStr()

        self.diffuse = fs.readVector(4)
        self.specular = fs.readVector(3)
        self.shininess = fs.readFloat()
        self.ambient = fs.readVector(3)

        self.flags = fs.readByte()

        self.edge_color = fs.readVector(4)
        self.edge_size = fs.readFloat()

        self.texture_index = fs.readIndex(texture_index_size)
        self.sphere_texture_index = fs.readIndex(texture_index_size)
        self.sphere_texture_mode = fs.readSignedByte()

        # Same slot, two meanings: texture reference or a one byte shared toon number
        self.is_shared_toon_texture = (fs.readSignedByte() != 0)
        if self.is_shared_toon_texture:
            self.toon_index = fs.readSignedByte()
        else:
            self.toon_index = fs.readIndex(texture_index_size)

        self.comment = fs.readStr()
        self.face_count = fs.readInt()


def _normalized(v: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(v)
    if length == 0.0:
        return v
    return v / length

class Coordinate: # Used by Bone.localCoordinate
    def __init__(self, xAxis, zAxis):
        self.x_axis = xAxis
        self.z_axis = zAxis

    def rotation(self) -> np.ndarray:
        """
        Right-handed orthonormal basis built from the stored axes.
        Y = normalize(Z x X), then Z = normalize(X x Y). Columns are the local X, Y and Z axes.
        """
        x = _normalized(np.asarray(self.x_axis, dtype=np.float64))
        z = _normalized(np.asarray(self.z_axis, dtype=np.float64))
        y = _normalized(np.cross(z, x))
        z = _normalized(np.cross(x, y))
        return np.column_stack((x, y, z))


class Bone:
    FLAG_TAIL_IS_BONE = 0x0001
    FLAG_ROTATABLE = 0x0002
    FLAG_MOVABLE = 0x0004
    FLAG_VISIBLE = 0x0008
    FLAG_CONTROLLABLE = 0x0010
    FLAG_IK = 0x0020
    FLAG_ADDITIONAL_ROTATE = 0x0100
    FLAG_ADDITIONAL_LOCATION = 0x0200
    FLAG_FIXED_AXIS = 0x0400
    FLAG_LOCAL_COORDINATE = 0x0800
    FLAG_TRANS_AFTER_PHYS = 0x1000
    FLAG_EXTERNAL_PARENT = 0x2000

    def __init__(self):
        self.name = ""
        self.name_e = ""

        self.location = (0.0, 0.0, 0.0)
        self.parent_index = -1
        self.transform_order = 0 # layer
        self.flags = 0

        # Exactly one of the two is set after load
        self.tail_index: Optional[int] = None
        self.tail_offset: Optional[Tuple[float, float, float]] = None

        self.additional_transform_index: Optional[int] = None
        self.additional_transform_influence = 0.0

        self.fixed_axis: Optional[Tuple[float, float, float]] = None

        self.localCoordinate: Optional[Coordinate] = None
        self.local_rotation: Optional[np.ndarray] = None

        self.external_parent_index: Optional[int] = None

        self.ik: Optional[IK] = None

    def __repr__(self):
        return '<Bone name %s, name_e %s, parent %d, flags 0x%04x>'%(
            self.name,
            self.name_e,
            self.parent_index,
            self.flags,)

    @property
    def isRotatable(self) -> bool:
        return bool(self.flags & self.FLAG_ROTATABLE)

    @property
    def isMovable(self) -> bool:
        return bool(self.flags & self.FLAG_MOVABLE)

    @property
    def isVisible(self) -> bool:
        return bool(self.flags & self.FLAG_VISIBLE)

    @property
    def isControllable(self) -> bool:
        return bool(self.flags & self.FLAG_CONTROLLABLE)

    @property
    def isIK(self) -> bool:
        return bool(self.flags & self.FLAG_IK)

    @property
    def hasAdditionalRotate(self) -> bool:
        return bool(self.flags & self.FLAG_ADDITIONAL_ROTATE)

    @property
    def hasAdditionalLocation(self) -> bool:
        return bool(self.flags & self.FLAG_ADDITIONAL_LOCATION)

    @property
    def transAfterPhys(self) -> bool:
        return bool(self.flags & self.FLAG_TRANS_AFTER_PHYS)

    def load(self, fs: FileReadStream):
        bone_index_size = fs.header().bone_index_size

        self.name = fs.readStr()
        self.name_e = fs.readStr()

        self.location = fs.readVector(3)
        self.parent_index = fs.readIndex(bone_index_size)
        self.transform_order = fs.readInt()

        flags = self.flags = fs.readUnsignedShort()

        # The checks below run in wire order. A block whose flag is clear takes no bytes.
        if flags & self.FLAG_TAIL_IS_BONE:
            self.tail_index = fs.readIndex(bone_index_size)
        else:
            self.tail_offset = fs.readVector(3)

        if flags & (self.FLAG_ADDITIONAL_ROTATE | self.FLAG_ADDITIONAL_LOCATION):
            self.additional_transform_index = fs.readIndex(bone_index_size)
            self.additional_transform_influence = fs.readFloat()

        if flags & self.FLAG_FIXED_AXIS:
            self.fixed_axis = fs.readVector(3)

        if flags & self.FLAG_LOCAL_COORDINATE:
            xaxis = fs.readVector(3)
            zaxis = fs.readVector(3)
            self.localCoordinate = Coordinate(xaxis, zaxis)
            self.local_rotation = self.localCoordinate.rotation()

        if flags & self.FLAG_EXTERNAL_PARENT:
            self.external_parent_index = fs.readIndex(bone_index_size)

        if flags & self.FLAG_IK:
            self.ik = IK()
            self.ik.load(fs)


class IK:
    def __init__(self):
        self.target_index = -1
        self.loopCount = 0
        self.rotationConstraint = 0.0 # radians per iteration
        self.links: List[IKLink] = []

    def __repr__(self):
        return '<IK target %d, loops %d, links %d>'%(self.target_index, self.loopCount, len(self.links))

    def load(self, fs: FileReadStream):
        self.target_index = fs.readIndex(fs.header().bone_index_size)
        self.loopCount = fs.readInt()
        self.rotationConstraint = fs.readFloat()

        iklink_num = fs.readCount()
        for i in range(iklink_num):
            link = IKLink()
            link.load(fs)
            self.links.append(link)


class IKLink:
    def __init__(self):
        self.target_index = -1
        self.maximumAngle = None
        self.minimumAngle = None

    def __repr__(self):
        return '<IKLink target %d>'%(self.target_index)

    def load(self, fs: FileReadStream):
        self.target_index = fs.readIndex(fs.header().bone_index_size)
        flag = fs.readByte()
        if flag == 1:
            self.minimumAngle = fs.readVector(3)
            self.maximumAngle = fs.readVector(3)
        else:
            self.minimumAngle = None
            self.maximumAngle = None


################################################################################
# Morphs
################################################################################
class GroupMorphOffset:
    __slots__ = ("morph_index", "factor")

    def __init__(self):
        self.morph_index = -1
        self.factor = 0.0

    @classmethod
    def read(cls, fs: FileReadStream) -> GroupMorphOffset:
        t = cls()
        t.morph_index = fs.readIndex(fs.header().morph_index_size)
        t.factor = fs.readFloat()
        return t

class VertexMorphOffset:
    __slots__ = ("vertex_index", "offset")

    def __init__(self):
        self.vertex_index = 0
        self.offset = (0.0, 0.0, 0.0)

    @classmethod
    def read(cls, fs: FileReadStream) -> VertexMorphOffset:
        t = cls()
        t.vertex_index = fs.readVertexIndex(fs.header().vertex_index_size)
        t.offset = fs.readVector(3)
        return t

class BoneMorphOffset:
    __slots__ = ("bone_index", "location_offset", "rotation_offset")

    def __init__(self):
        self.bone_index = -1
        self.location_offset = (0.0, 0.0, 0.0)
        self.rotation_offset = (0.0, 0.0, 0.0, 1.0)

    def __repr__(self):
        return '<BoneMorphOffset bone %d, location_offset %s, rotation_offset %s>'%(
            self.bone_index,
            str(self.location_offset),
            str(self.rotation_offset),
            )

    @classmethod
    def read(cls, fs: FileReadStream) -> BoneMorphOffset:
        t = cls()
        t.bone_index = fs.readIndex(fs.header().bone_index_size)
        t.location_offset = fs.readVector(3)
        t.rotation_offset = fs.readVector(4)
        return t

class UVMorphOffset:
    __slots__ = ("vertex_index", "offset")

    def __init__(self):
        self.vertex_index = 0
        self.offset = (0.0, 0.0, 0.0, 0.0)

    @classmethod
    def read(cls, fs: FileReadStream) -> UVMorphOffset:
        t = cls()
        t.vertex_index = fs.readVertexIndex(fs.header().vertex_index_size)
        t.offset = fs.readVector(4)
        return t

class MaterialMorphOffset:
    TYPE_MULT = 0
    TYPE_ADD = 1

    def __init__(self):
        self.material_index = -1 # -1 targets every material
        self.offset_type = self.TYPE_MULT
        self.diffuse_offset = ()
        self.specular_offset = ()
        self.shininess_offset = 0.0
        self.ambient_offset = ()
        self.edge_color_offset = ()
        self.edge_size_offset = 0.0
        self.texture_factor = ()
        self.sphere_texture_factor = ()
        self.toon_texture_factor = ()

    @classmethod
    def read(cls, fs: FileReadStream) -> MaterialMorphOffset:
        t = cls()
        t.material_index = fs.readIndex(fs.header().material_index_size)
        t.offset_type = fs.readSignedByte()
        t.diffuse_offset = fs.readVector(4)
        t.specular_offset = fs.readVector(3)
        t.shininess_offset = fs.readFloat()
        t.ambient_offset = fs.readVector(3)
        t.edge_color_offset = fs.readVector(4)
        t.edge_size_offset = fs.readFloat()
        t.texture_factor = fs.readVector(4)
        t.sphere_texture_factor = fs.readVector(4)
        t.toon_texture_factor = fs.readVector(4)
        return t

class ImpulseMorphOffset:
    __slots__ = ("rigid_index", "is_local", "velocity", "torque")

    def __init__(self):
        self.rigid_index = -1
        self.is_local = False
        self.velocity = (0.0, 0.0, 0.0)
        self.torque = (0.0, 0.0, 0.0)

    @classmethod
    def read(cls, fs: FileReadStream) -> ImpulseMorphOffset:
        t = cls()
        t.rigid_index = fs.readIndex(fs.header().rigid_index_size)
        t.is_local = (fs.readByte() != 0)
        t.velocity = fs.readVector(3)
        t.torque = fs.readVector(3)
        return t


class Morph:
    CATEGORY_SYSTEM = 0
    CATEGORY_EYEBROW = 1
    CATEGORY_EYE = 2
    CATEGORY_MOUTH = 3
    CATEGORY_OTHER = 4

    offset_class = None

    def __init__(self, name: str, name_e: str, category: int, type_index: int):
        self.offsets: list = []
        self.name: str = name
        self.name_e: str = name_e
        self.category: int = category # panel
        self.type_index: int = type_index

    def __repr__(self):
        return '<%s name %s, name_e %s, offsets %d>'%(self.__class__.__name__, self.name, self.name_e, len(self.offsets))

    @staticmethod
    def create(fs: FileReadStream) -> Morph:
        name = fs.readStr()
        name_e = fs.readStr()
        category = fs.readSignedByte()
        typeIndex = fs.readSignedByte()
        cls = _MORPH_CLASSES.get(typeIndex)
        if cls is None:
            raise InvalidEnumError('invalid morph type %d (morph %s)'%(typeIndex, name))
        ret = cls(name, name_e, category, typeIndex)
        ret.load(fs)
        return ret

    def load(self, fs: FileReadStream):
        num = fs.readCount()
        read = self.offset_class.read
        self.offsets = [read(fs) for _ in range(num)]

class GroupMorph(Morph):
    offset_class = GroupMorphOffset

class FlipMorph(Morph):
    offset_class = GroupMorphOffset

class VertexMorph(Morph):
    offset_class = VertexMorphOffset

class BoneMorph(Morph):
    offset_class = BoneMorphOffset

class UVMorph(Morph):
    offset_class = UVMorphOffset

    @property
    def uv_index(self) -> int:
        """0 for the base UV, 1-4 for additional UV channels."""
        return self.type_index - 3

class MaterialMorph(Morph):
    offset_class = MaterialMorphOffset

class ImpulseMorph(Morph):
    offset_class = ImpulseMorphOffset

_MORPH_CLASSES = {
    0: GroupMorph,
    1: VertexMorph,
    2: BoneMorph,
    3: UVMorph,
    4: UVMorph,
    5: UVMorph,
    6: UVMorph,
    7: UVMorph,
    8: MaterialMorph,
    9: FlipMorph,
    10: ImpulseMorph,
    }


def load(source: Source) -> Optional[Model]:
    """
    Load a PMX 2.0 model from a path or an open binary stream.
    Returns None when the stream is not PMX 2.0. Raises CorruptedFileError (or a subclass)
    when it is PMX 2.0 but cannot be decoded. Streams passed in by the caller are left open.
    """
    with FileReadStream(source) as fs:
        header = Header()
        try:
            header.load(fs)
        except InvalidFileError as e:
            logging.info(f"Not a PMX 2.0 file ({fs.path() or 'stream'}): {e}")
            return None
        fs.setHeader(header)
        model = Model()
        try:
            model.load(fs)
        except struct.error as e:
            raise CorruptedFileError(f"Corrupted file: {e}") from e

        return model
