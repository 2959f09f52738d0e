# SPDX-License-Identifier: Apache-2.0
#
# Copyright (C) 2024, Arm Limited and contributors.
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may
# not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

"""
This module implements a BTF debug info decoder as described by:
https://www.kernel.org/doc/html/latest/bpf/btf.html

The decoder turns a BTF blob into an ordered tuple of :class:`BTFType`
instances. Type IDs are kept as plain integers: the type with ID ``n`` is the
``n``-th decoded type (1-based), and ID 0 denotes ``void``. Resolving those IDs
into a graph is left to the consumer.

Every failure aborts the decoding with a :exc:`BTFError`, carrying a
:class:`BTFErrorCode` and, whenever meaningful, the :class:`FileRange` of the
offending record.
"""

import contextlib
import enum
import inspect
import os
from collections import namedtuple

from btfdecode.conf import BTFParserConf
from btfdecode.reader import FileReader, FileReaderError, FileReaderErrorCode
from btfdecode.utils import Loggable


_LITTLE_ENDIAN_MAGIC = 0xeb9f
_BIG_ENDIAN_MAGIC = 0x9feb

TYPE_HEADER_SIZE = 12
"""
Size in bytes of the common header of every entry of the type section.
"""


class BTFErrorCode(enum.Enum):
    """
    Closed set of error codes reported by :exc:`BTFError`.

    The first four are reported by the byte source and passed through.
    """
    UNKNOWN = 0
    MEMORY_ALLOCATION_FAILURE = 1
    FILE_NOT_FOUND = 2
    IO_ERROR = 3
    INVALID_MAGIC_VALUE = 4
    INVALID_BTF_KIND = 5
    INVALID_INT_ENCODING = 6
    # Also used by BTF_KIND_CONST
    INVALID_PTR_ENCODING = 7
    INVALID_ARRAY_ENCODING = 8
    INVALID_TYPEDEF_ENCODING = 9
    INVALID_ENUM_ENCODING = 10
    INVALID_FUNC_PROTO_ENCODING = 11
    INVALID_VOLATILE_ENCODING = 12
    INVALID_FWD_ENCODING = 13
    INVALID_FUNC_ENCODING = 14
    INVALID_STRUCT_UNION_ENCODING = 15


FileRange = namedtuple('FileRange', ('offset', 'size'))
FileRange.__doc__ = """
Byte range of the blob an error relates to.
"""


class BTFError(Exception):
    """
    Error raised when a BTF blob cannot be decoded.

    :param code: Error code.
    :type code: BTFErrorCode

    :param file_range: Byte range of the offending record, if any.
    :type file_range: FileRange or None

    :param msg: Extra human-readable details.
    :type msg: str or None
    """
    def __init__(self, code, file_range=None, msg=None):
        self.code = code
        self.file_range = file_range
        self.msg = msg
        super().__init__(code, file_range, msg)

    def __str__(self):
        file_range = self.file_range
        if file_range:
            where = f' at offset {file_range.offset} (size={file_range.size})'
        else:
            where = ''
        msg = f': {self.msg}' if self.msg else ''
        return f'{self.code.name}{where}{msg}'


_READER_ERROR_CODES = {
    FileReaderErrorCode.UNKNOWN: BTFErrorCode.UNKNOWN,
    FileReaderErrorCode.MEMORY_ALLOCATION_FAILURE: BTFErrorCode.MEMORY_ALLOCATION_FAILURE,
    FileReaderErrorCode.FILE_NOT_FOUND: BTFErrorCode.FILE_NOT_FOUND,
    FileReaderErrorCode.IO_ERROR: BTFErrorCode.IO_ERROR,
}


def convert_reader_error(error):
    """
    Convert a :exc:`btfdecode.reader.FileReaderError` into a :exc:`BTFError`.

    The location of the failed read, if known, becomes the
    :attr:`BTFError.file_range`.
    """
    op = error.read_operation
    file_range = FileRange(op.offset, op.size) if op else None
    return BTFError(
        _READER_ERROR_CODES.get(error.code, BTFErrorCode.UNKNOWN),
        file_range,
        msg=error.msg,
    )


@contextlib.contextmanager
def _reader_errors():
    try:
        yield
    except FileReaderError as e:
        raise convert_reader_error(e) from e


class BTFKind(enum.IntEnum):
    """
    Kinds defined by the BTF format.

    Only a subset of them is supported by the decoder, see
    :data:`SUPPORTED_KINDS`.
    """
    UNKN = 0
    INT = 1
    PTR = 2
    ARRAY = 3
    STRUCT = 4
    UNION = 5
    ENUM = 6
    FWD = 7
    TYPEDEF = 8
    VOLATILE = 9
    CONST = 10
    RESTRICT = 11
    FUNC = 12
    FUNC_PROTO = 13
    VAR = 14
    DATASEC = 15
    FLOAT = 16
    DECL_TAG = 17
    TYPE_TAG = 18
    ENUM64 = 19


class BTFHeader(namedtuple('BTFHeader', (
    'magic',
    'version',
    'flags',
    'hdr_len',
    'type_off',
    'type_len',
    'str_off',
    'str_len',
))):
    """
    BTF file header.

    The section offsets are relative to the end of the header, which is
    located ``hdr_len`` bytes after the start of the blob.
    """
    __slots__ = ()

    @property
    def type_section_start(self):
        return self.hdr_len + self.type_off

    @property
    def type_section_end(self):
        return self.type_section_start + self.type_len

    @property
    def str_section_start(self):
        return self.hdr_len + self.str_off

    def str_addr(self, name_off):
        """
        Absolute offset of the string at ``name_off`` in the string table.
        """
        return self.str_section_start + name_off


BTFTypeHeader = namedtuple('BTFTypeHeader', (
    'name_off',
    'vlen',
    'kind',
    'kind_flag',
    'size_or_type',
))
BTFTypeHeader.__doc__ = """
Common header of every entry of the type section.

``kind`` is kept as a plain integer since it may not be a known
:class:`BTFKind`. ``size_or_type`` is either a size in bytes or a type ID
depending on the kind.
"""


class BTFIntEncoding(enum.Enum):
    NONE = 0
    SIGNED = 1
    CHAR = 2
    BOOL = 3


class _BTFRecordMeta(type):
    def __new__(metacls, name, bases, dct, **kwargs):
        new = super().__new__(metacls, name, bases, dct, **kwargs)
        mro = inspect.getmro(new)
        new._FIELDS = tuple(
            attr
            for cls in reversed(mro)
            for attr in cls.__dict__.get('__slots__', ())
        )
        new._KEY_FIELDS = tuple(
            attr
            for attr in new._FIELDS
            if attr not in new._NON_KEY_FIELDS
        )
        return new


class _BTFRecord(metaclass=_BTFRecordMeta):
    """
    Read-only record.

    Each attribute can be assigned once. Attributes listed in
    :attr:`_NON_KEY_FIELDS` can also be assigned once after being set to
    ``None``.
    """
    __slots__ = ()
    _NON_KEY_FIELDS = ()
    """
    Attributes ignored when comparing and hashing records.
    """

    def __setattr__(self, attr, val):
        try:
            current = getattr(self, attr)
        except AttributeError:
            pass
        else:
            if not (attr in self._NON_KEY_FIELDS and current is None):
                raise AttributeError(f'{self.__class__.__qualname__}.{attr} is read-only')
        super().__setattr__(attr, val)

    def __delattr__(self, attr):
        raise AttributeError(f'{self.__class__.__qualname__}.{attr} is read-only')

    def _astuple(self):
        return tuple(
            getattr(self, attr)
            for attr in self._KEY_FIELDS
        )

    def __eq__(self, other):
        if type(self) is type(other):
            return self._astuple() == other._astuple()
        else:
            return NotImplemented

    def __hash__(self):
        return hash((type(self), self._astuple()))

    def __repr__(self):
        fields = ', '.join(
            f'{attr}={getattr(self, attr)!r}'
            for attr in self._FIELDS
        )
        return f'{self.__class__.__qualname__}({fields})'


class BTFType(_BTFRecord):
    """
    Base class of all decoded types.

    :ivar id: Type ID, assigned once the type is appended to the type list.
      It is not taken into account when comparing types, and is the only
      attribute assigned after construction.
    """
    __slots__ = ('id',)
    _NON_KEY_FIELDS = ('id',)
    KIND = None
    """
    :class:`BTFKind` this class is decoded from.
    """

    def __init__(self):
        self.id = None

    @property
    def kind(self):
        return self.KIND


class BTFInt(BTFType):
    __slots__ = ('name', 'size', 'bits', 'bit_offset', 'is_signed', 'is_char', 'is_bool')
    KIND = BTFKind.INT

    def __init__(self, name, size, bits, bit_offset, is_signed=False, is_char=False, is_bool=False):
        super().__init__()
        self.name = name
        self.size = size
        self.bits = bits
        self.bit_offset = bit_offset
        self.is_signed = is_signed
        self.is_char = is_char
        self.is_bool = is_bool

    @property
    def encoding(self):
        if self.is_signed:
            return BTFIntEncoding.SIGNED
        elif self.is_char:
            return BTFIntEncoding.CHAR
        elif self.is_bool:
            return BTFIntEncoding.BOOL
        else:
            return BTFIntEncoding.NONE

    @property
    def is_bitfield(self):
        return self.bits != (self.size * 8)


class _BTFRefType(BTFType):
    __slots__ = ('typ',)

    def __init__(self, typ):
        super().__init__()
        self.typ = typ


class BTFPtr(_BTFRefType):
    KIND = BTFKind.PTR


class BTFConst(_BTFRefType):
    KIND = BTFKind.CONST


class BTFVolatile(_BTFRefType):
    KIND = BTFKind.VOLATILE


class BTFArray(BTFType):
    __slots__ = ('typ', 'index_typ', 'nelems')
    KIND = BTFKind.ARRAY

    def __init__(self, typ, index_typ, nelems):
        super().__init__()
        self.typ = typ
        self.index_typ = index_typ
        self.nelems = nelems


class BTFTypedef(BTFType):
    __slots__ = ('name', 'typ')
    KIND = BTFKind.TYPEDEF

    def __init__(self, name, typ):
        super().__init__()
        self.name = name
        self.typ = typ


class BTFMember(_BTFRecord):
    """
    Member of a :class:`BTFStruct` or :class:`BTFUnion`.

    :ivar offset: Raw 32-bit offset field, as found in the blob.
    :ivar kind_flag: ``kind_flag`` of the parent struct/union.

    The unit of :attr:`offset` is not interpreted by the decoder. The kernel
    documentation describes it as a bit offset, with the bitfield size packed
    in the top 8 bits when ``kind_flag`` is set: :attr:`bit_offset` and
    :attr:`bitfield_size` implement that reading for consumers that rely on it.
    """
    __slots__ = ('name', 'typ', 'offset', 'kind_flag')

    def __init__(self, name, typ, offset, kind_flag=False):
        self.name = name
        self.typ = typ
        self.offset = offset
        self.kind_flag = kind_flag

    @property
    def bit_offset(self):
        if self.kind_flag:
            #define BTF_MEMBER_BIT_OFFSET(val)      ((val) & 0xffffff)
            return self.offset & 0xffffff
        else:
            return self.offset

    @property
    def bitfield_size(self):
        """
        Size of the bitfield in bits, or 0 if the member is not a bitfield.
        """
        if self.kind_flag:
            #define BTF_MEMBER_BITFIELD_SIZE(val)   ((val) >> 24)
            return self.offset >> 24
        else:
            return 0


class _BTFStructUnion(BTFType):
    __slots__ = ('name', 'size', 'kind_flag', 'members')

    def __init__(self, name, size, members, kind_flag=False):
        super().__init__()
        self.name = name
        self.size = size
        self.kind_flag = kind_flag
        self.members = tuple(members)


class BTFStruct(_BTFStructUnion):
    KIND = BTFKind.STRUCT


class BTFUnion(_BTFStructUnion):
    KIND = BTFKind.UNION


class BTFEnumerator(_BTFRecord):
    __slots__ = ('name', 'value')

    def __init__(self, name, value):
        self.name = name
        self.value = value


class BTFEnum(BTFType):
    __slots__ = ('name', 'size', 'enumerators')
    KIND = BTFKind.ENUM

    def __init__(self, name, size, enumerators):
        super().__init__()
        self.name = name
        self.size = size
        self.enumerators = tuple(enumerators)


class BTFForwardDecl(BTFType):
    __slots__ = ('name', 'is_union')
    KIND = BTFKind.FWD

    def __init__(self, name, is_union):
        super().__init__()
        self.name = name
        self.is_union = is_union


class BTFFunc(BTFType):
    __slots__ = ('name', 'typ')
    KIND = BTFKind.FUNC

    def __init__(self, name, typ):
        super().__init__()
        self.name = name
        self.typ = typ


class BTFParam(_BTFRecord):
    __slots__ = ('name', 'typ')

    def __init__(self, name, typ):
        self.name = name
        self.typ = typ


class BTFFuncProto(BTFType):
    """
    Function prototype.

    :ivar typ: Type ID of the return type.
    :ivar params: Parameters, without the trailing ``...`` sentinel.
    :ivar variadic: ``True`` if the prototype ends with ``...``.
    """
    __slots__ = ('typ', 'params', 'variadic')
    KIND = BTFKind.FUNC_PROTO

    def __init__(self, typ, params, variadic=False):
        super().__init__()
        self.typ = typ
        self.params = tuple(params)
        self.variadic = variadic


SUPPORTED_KINDS = frozenset(
    cls.KIND
    for cls in (
        BTFInt, BTFPtr, BTFConst, BTFVolatile, BTFArray, BTFTypedef,
        BTFStruct, BTFUnion, BTFEnum, BTFForwardDecl, BTFFunc, BTFFuncProto,
    )
)
"""
Kinds the decoder is able to decode. Any other kind is rejected with
:attr:`BTFErrorCode.INVALID_BTF_KIND`.
"""


def resolve_string(reader, offset, encoding='utf-8', errors='replace'):
    """
    Read the NUL-terminated string located at the absolute ``offset``.

    The cursor of ``reader`` is restored before returning, including when the
    read fails.

    :param reader: Byte source.
    :type reader: btfdecode.reader.FileReader

    :param offset: Absolute offset of the string.
    :type offset: int

    :param encoding: Codec used to decode the bytes.
    :type encoding: str

    :param errors: Codec error handler. With ``"strict"``, undecodable bytes
        raise a :exc:`BTFError` with :attr:`BTFErrorCode.UNKNOWN`.
    :type errors: str
    """
    original_offset = reader.offset
    try:
        with _reader_errors():
            reader.seek(offset)
            buf = reader.read_cstring()
    finally:
        reader.seek(original_offset)

    try:
        return buf.decode(encoding, errors)
    except UnicodeDecodeError as e:
        raise BTFError(
            BTFErrorCode.UNKNOWN,
            FileRange(offset, len(buf) + 1),
            msg=f'Could not decode string: {e}',
        ) from e


def detect_endianness(reader):
    """
    Detect the byte order of the blob from its magic number.

    :returns: ``True`` for little endian, ``False`` for big endian.

    .. note:: ``reader`` is left in the detected byte order.
    """
    with _reader_errors():
        reader.seek(0)
        reader.set_endianness(True)
        magic = reader.u16()

    if magic == _LITTLE_ENDIAN_MAGIC:
        little_endian = True
    elif magic == _BIG_ENDIAN_MAGIC:
        little_endian = False
    else:
        raise BTFError(
            BTFErrorCode.INVALID_MAGIC_VALUE,
            msg=f'Not a BTF binary blob, invalid magic: {magic:#06x}',
        )

    reader.set_endianness(little_endian)
    return little_endian


def read_header(reader):
    """
    Read the :class:`BTFHeader` at the start of the blob, using the current
    byte order of ``reader``.

    Unknown versions and flags are passed through as-is.
    """
    with _reader_errors():
        reader.seek(0)
        return BTFHeader(
            magic=reader.u16(),
            version=reader.u8(),
            flags=reader.u8(),
            hdr_len=reader.u32(),
            type_off=reader.u32(),
            type_len=reader.u32(),
            str_off=reader.u32(),
            str_len=reader.u32(),
        )


def read_type_header(reader):
    """
    Read a :class:`BTFTypeHeader` at the current offset.
    """
    with _reader_errors():
        name_off = reader.u32()
        info = reader.u32()
        size_or_type = reader.u32()

    return BTFTypeHeader(
        name_off=name_off,
        vlen=info & 0xffff,
        kind=(info & 0x1f000000) >> 24,
        kind_flag=bool(info & (1 << 31)),
        size_or_type=size_or_type,
    )


class _DecodeContext:
    """
    State handed to the per-kind decoders.

    ``entry_offset`` is the offset of the type header of the entry being
    decoded, so that errors can point at the whole record.
    """
    __slots__ = ('header', 'type_header', 'reader', 'entry_offset', 'encoding', 'errors')

    def __init__(self, header, type_header, reader, entry_offset, encoding='utf-8', errors='replace'):
        self.header = header
        self.type_header = type_header
        self.reader = reader
        self.entry_offset = entry_offset
        self.encoding = encoding
        self.errors = errors

    def error(self, code, payload_size=0, msg=None):
        return BTFError(
            code,
            FileRange(self.entry_offset, TYPE_HEADER_SIZE + payload_size),
            msg=msg,
        )

    def resolve_name(self, name_off):
        return resolve_string(
            self.reader,
            self.header.str_addr(name_off),
            encoding=self.encoding,
            errors=self.errors,
        )

    def resolve_opt_name(self, name_off):
        if name_off:
            return self.resolve_name(name_off)
        else:
            return None


def _decode_int(ctx):
    th = ctx.type_header
    size = th.size_or_type

    def invalid(msg):
        return ctx.error(BTFErrorCode.INVALID_INT_ENCODING, 4, msg)

    if th.kind_flag or th.vlen:
        raise invalid('kind_flag and vlen must be 0')
    if size not in (1, 2, 4, 8, 16):
        raise invalid(f'Invalid size: {size}')

    name = ctx.resolve_opt_name(th.name_off)
    meta = ctx.reader.u32()

    #define BTF_INT_ENCODING(VAL)   (((VAL) & 0x0f000000) >> 24)
    encoding = (meta & 0x0f000000) >> 24
    #define BTF_INT_OFFSET(VAL)     (((VAL) & 0x00ff0000) >> 16)
    bit_offset = (meta & 0x00ff0000) >> 16
    #define BTF_INT_BITS(VAL)       ((VAL)  & 0x000000ff)
    bits = meta & 0x000000ff

    #define BTF_INT_SIGNED  (1 << 0)
    #define BTF_INT_CHAR    (1 << 1)
    #define BTF_INT_BOOL    (1 << 2)
    is_signed = bool(encoding & (1 << 0))
    is_char = bool(encoding & (1 << 1))
    is_bool = bool(encoding & (1 << 2))

    if is_signed + is_char + is_bool > 1:
        raise invalid(f'Conflicting int encoding: {encoding:#x}')
    if bits > 128 or bits > size * 8:
        raise invalid(f'{bits} bits do not fit in {size} bytes')
    if bit_offset + bits > size * 8:
        raise invalid(f'{bits} bits at offset {bit_offset} do not fit in {size} bytes')

    return BTFInt(
        name=name,
        size=size,
        bits=bits,
        bit_offset=bit_offset,
        is_signed=is_signed,
        is_char=is_char,
        is_bool=is_bool,
    )


def _decode_ref(ctx, cls, code):
    th = ctx.type_header
    if th.name_off or th.kind_flag or th.vlen:
        raise ctx.error(code, msg='name_off, kind_flag and vlen must be 0')

    return cls(typ=th.size_or_type)


def _decode_array(ctx):
    th = ctx.type_header
    if th.name_off or th.kind_flag or th.vlen or th.size_or_type:
        raise ctx.error(
            BTFErrorCode.INVALID_ARRAY_ENCODING, 12,
            msg='name_off, kind_flag, vlen and size must be 0',
        )

    reader = ctx.reader
    typ = reader.u32()
    index_typ = reader.u32()
    nelems = reader.u32()
    return BTFArray(
        typ=typ,
        index_typ=index_typ,
        nelems=nelems,
    )


def _decode_typedef(ctx):
    th = ctx.type_header
    if not th.name_off or th.kind_flag or th.vlen:
        raise ctx.error(
            BTFErrorCode.INVALID_TYPEDEF_ENCODING,
            msg='Typedef must be named, kind_flag and vlen must be 0',
        )

    return BTFTypedef(
        name=ctx.resolve_name(th.name_off),
        typ=th.size_or_type,
    )


def _decode_enum(ctx):
    th = ctx.type_header
    size = th.size_or_type
    payload_size = 8 * th.vlen

    def invalid(msg):
        return ctx.error(BTFErrorCode.INVALID_ENUM_ENCODING, payload_size, msg)

    if th.kind_flag:
        raise invalid('kind_flag must be 0')
    # Forward declarations of enums (vlen == 0) are a GNU extension that is
    # not supported.
    if not th.vlen:
        raise invalid('Enum has no enumerator')
    if size not in (1, 2, 4, 8):
        raise invalid(f'Invalid size: {size}')

    name = ctx.resolve_opt_name(th.name_off)

    def cast_value(v):
        if v & (1 << 31):
            v = v - (1 << 32)
        return v

    reader = ctx.reader
    enumerators = []
    for _ in range(th.vlen):
        name_off = reader.u32()
        if not name_off:
            raise invalid('Anonymous enumerator')

        enumerators.append(
            BTFEnumerator(
                name=ctx.resolve_name(name_off),
                value=cast_value(reader.u32()),
            )
        )

    return BTFEnum(
        name=name,
        size=size,
        enumerators=enumerators,
    )


def _decode_func_proto(ctx):
    th = ctx.type_header
    if th.name_off or th.kind_flag:
        raise ctx.error(
            BTFErrorCode.INVALID_FUNC_PROTO_ENCODING, 8 * th.vlen,
            msg='name_off and kind_flag must be 0',
        )

    reader = ctx.reader
    params = []
    for _ in range(th.vlen):
        name = ctx.resolve_opt_name(reader.u32())
        typ = reader.u32()
        params.append(BTFParam(name=name, typ=typ))

    # A variadic function is encoded with an extra anonymous void parameter
    if params and params[-1].name is None and params[-1].typ == 0:
        params.pop()
        variadic = True
    else:
        variadic = False

    return BTFFuncProto(
        typ=th.size_or_type,
        params=params,
        variadic=variadic,
    )


def _decode_struct_union(ctx, cls):
    th = ctx.type_header
    name = ctx.resolve_opt_name(th.name_off)

    reader = ctx.reader
    members = []
    for _ in range(th.vlen):
        member_name = ctx.resolve_opt_name(reader.u32())
        typ = reader.u32()
        offset = reader.u32()
        members.append(
            BTFMember(
                name=member_name,
                typ=typ,
                offset=offset,
                kind_flag=th.kind_flag,
            )
        )

    return cls(
        name=name,
        size=th.size_or_type,
        members=members,
        kind_flag=th.kind_flag,
    )


def _decode_fwd(ctx):
    th = ctx.type_header
    if not th.name_off or th.vlen or th.size_or_type:
        raise ctx.error(
            BTFErrorCode.INVALID_FWD_ENCODING,
            msg='Forward declaration must be named, vlen and size must be 0',
        )

    return BTFForwardDecl(
        name=ctx.resolve_name(th.name_off),
        is_union=th.kind_flag,
    )


def _decode_func(ctx):
    th = ctx.type_header
    if not th.name_off or th.kind_flag or th.vlen:
        raise ctx.error(
            BTFErrorCode.INVALID_FUNC_ENCODING,
            msg='Function must be named, kind_flag and vlen must be 0',
        )

    return BTFFunc(
        name=ctx.resolve_name(th.name_off),
        typ=th.size_or_type,
    )


def _decode_type(ctx):
    kind = ctx.type_header.kind

    if kind == BTFKind.INT:
        return _decode_int(ctx)
    elif kind == BTFKind.PTR:
        return _decode_ref(ctx, BTFPtr, BTFErrorCode.INVALID_PTR_ENCODING)
    elif kind == BTFKind.CONST:
        return _decode_ref(ctx, BTFConst, BTFErrorCode.INVALID_PTR_ENCODING)
    elif kind == BTFKind.VOLATILE:
        return _decode_ref(ctx, BTFVolatile, BTFErrorCode.INVALID_VOLATILE_ENCODING)
    elif kind == BTFKind.ARRAY:
        return _decode_array(ctx)
    elif kind == BTFKind.TYPEDEF:
        return _decode_typedef(ctx)
    elif kind == BTFKind.ENUM:
        return _decode_enum(ctx)
    elif kind == BTFKind.FUNC_PROTO:
        return _decode_func_proto(ctx)
    elif kind == BTFKind.STRUCT:
        return _decode_struct_union(ctx, BTFStruct)
    elif kind == BTFKind.UNION:
        return _decode_struct_union(ctx, BTFUnion)
    elif kind == BTFKind.FWD:
        return _decode_fwd(ctx)
    elif kind == BTFKind.FUNC:
        return _decode_func(ctx)
    else:
        try:
            kind_name = BTFKind(kind).name
        except ValueError:
            kind_name = 'unknown'
        raise ctx.error(
            BTFErrorCode.INVALID_BTF_KIND,
            msg=f'Unsupported BTF kind {kind} ({kind_name})',
        )


def parse_type_section(header, reader, encoding='utf-8', errors='replace'):
    """
    Decode all the entries of the type section.

    :param header: Header of the blob.
    :type header: BTFHeader

    :param reader: Byte source, in the byte order of the blob.
    :type reader: btfdecode.reader.FileReader

    :param encoding: See :func:`resolve_string`.
    :param errors: See :func:`resolve_string`.

    :returns: A tuple of :class:`BTFType`, the one at index ``i`` having the
        type ID ``i + 1``.

    .. note:: The loop relies on each decoder consuming exactly the payload
        of its entry. A section length that does not match the entries will
        surface as a read or decoding error.
    """
    end = header.type_section_end
    typs = []

    with _reader_errors():
        reader.seek(header.type_section_start)

        while reader.offset < end:
            entry_offset = reader.offset
            type_header = read_type_header(reader)
            ctx = _DecodeContext(
                header=header,
                type_header=type_header,
                reader=reader,
                entry_offset=entry_offset,
                encoding=encoding,
                errors=errors,
            )
            typ = _decode_type(ctx)

            if reader.offset > end:
                raise BTFError(
                    BTFErrorCode.IO_ERROR,
                    FileRange(entry_offset, reader.offset - entry_offset),
                    msg=f'Entry overruns the end of the type section at offset {end}',
                )

            typ.id = len(typs) + 1
            typs.append(typ)

    return tuple(typs)


class BTF(Loggable):
    """
    Decoded BTF blob.

    :param header: Header of the blob.
    :type header: BTFHeader

    :param types: Decoded types, in type ID order.
    :type types: collections.abc.Sequence(BTFType)

    Iterating over the object yields the types in order. Indexing is done by
    type ID, starting at 1 since ID 0 is ``void`` and is never decoded::

        btf = BTF.from_path('types.btf')
        assert btf[1] is btf.types[0]
    """

    def __init__(self, header, types):
        self.header = header
        self.types = tuple(types)

    def __len__(self):
        return len(self.types)

    def __iter__(self):
        return iter(self.types)

    def __getitem__(self, type_id):
        if 1 <= type_id <= len(self.types):
            return self.types[type_id - 1]
        else:
            raise KeyError(type_id)

    def get(self, type_id, default=None):
        """
        Same as ``self[type_id]`` but returns ``default`` for unknown IDs.
        """
        try:
            return self[type_id]
        except KeyError:
            return default

    @staticmethod
    def _get_conf(conf):
        if isinstance(conf, BTFParserConf):
            return conf
        else:
            return BTFParserConf(conf)

    @classmethod
    def from_reader(cls, reader, conf=None):
        """
        Decode the blob available from a byte source.

        :param reader: Byte source. It is used from its current state and is
            not closed.
        :type reader: btfdecode.reader.FileReader

        :param conf: Decoder options.
        :type conf: btfdecode.conf.BTFParserConf or collections.abc.Mapping or None
        """
        conf = cls._get_conf(conf)
        logger = cls.get_logger()

        little_endian = detect_endianness(reader)
        header = read_header(reader)
        logger.debug(f'BTF blob is {"little" if little_endian else "big"} endian, header: {header}')

        types = parse_type_section(
            header,
            reader,
            encoding=conf['string-encoding'],
            errors=conf['string-errors'],
        )
        logger.debug(f'Decoded {len(types)} BTF types')
        return cls(header=header, types=types)

    @classmethod
    def from_buf(cls, buf, conf=None):
        """
        Decode a blob held in memory.

        :param buf: BTF blob.
        :type buf: bytes or bytearray or memoryview
        """
        return cls.from_reader(FileReader(buf), conf=conf)

    @classmethod
    def from_path(cls, path, conf=None):
        """
        Decode a BTF file.

        :param path: Path to the file.
        :type path: str or os.PathLike
        """
        conf = cls._get_conf(conf)
        with _reader_errors():
            reader = FileReader.from_path(path, use_mmap=conf['use-mmap'])

        with reader:
            return cls.from_reader(reader, conf=conf)


def parse_btf(src, conf=None):
    """
    Decode a BTF blob.

    :param src: Path to a BTF file, blob content or byte source.
    :type src: str or os.PathLike or bytes or bytearray or memoryview or
        btfdecode.reader.FileReader

    :param conf: Decoder options.
    :type conf: btfdecode.conf.BTFParserConf or collections.abc.Mapping or None

    :rtype: BTF
    :raises BTFError: if the blob cannot be decoded.
    """
    if isinstance(src, FileReader):
        return BTF.from_reader(src, conf=conf)
    elif isinstance(src, (str, os.PathLike)):
        return BTF.from_path(src, conf=conf)
    else:
        return BTF.from_buf(src, conf=conf)

# vim :set tabstop=4 shiftwidth=4 expandtab textwidth=80
