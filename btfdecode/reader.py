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
Random-access byte source used by the BTF decoder.

A :class:`FileReader` wraps a binary blob with a single stateful cursor. All
multi-byte reads are done in the byte order selected with
:meth:`FileReader.set_endianness`, and every failure is reported as a
:exc:`FileReaderError`.
"""

import enum
import mmap
import struct
from collections import namedtuple

from btfdecode.utils import Loggable


class FileReaderErrorCode(enum.Enum):
    UNKNOWN = 0
    MEMORY_ALLOCATION_FAILURE = 1
    FILE_NOT_FOUND = 2
    IO_ERROR = 3


ReadOperation = namedtuple('ReadOperation', ('offset', 'size'))
ReadOperation.__doc__ = """
Location of a failed read: ``size`` bytes starting at ``offset``.
"""


class FileReaderError(Exception):
    """
    Failure reported by :class:`FileReader`.

    :param code: Error code.
    :type code: FileReaderErrorCode

    :param read_operation: The read that failed, if any.
    :type read_operation: ReadOperation or None
    """
    def __init__(self, code, read_operation=None, msg=None):
        self.code = code
        self.read_operation = read_operation
        self.msg = msg
        super().__init__(code, read_operation, msg)

    def __str__(self):
        op = self.read_operation
        where = f' at offset {op.offset} (size={op.size})' if op else ''
        msg = f': {self.msg}' if self.msg else ''
        return f'{self.code.name}{where}{msg}'


class FileReader(Loggable):
    """
    Stateful cursor over a binary blob.

    :param buf: Content to read from.
    :type buf: bytes or bytearray or memoryview or mmap.mmap

    :param path: Path of the file ``buf`` comes from, for error messages only.
    :type path: str or None

    The reader starts at offset 0 in little-endian mode.
    """

    _DECODERS = {
        little_endian: {
            size: struct.Struct(f'{"<" if little_endian else ">"}{fmt}')
            for size, fmt in ((1, 'B'), (2, 'H'), (4, 'I'))
        }
        for little_endian in (True, False)
    }

    def __init__(self, buf, path=None):
        if isinstance(buf, memoryview):
            buf = buf.tobytes()
        self._buf = buf
        self._mmap = buf if isinstance(buf, mmap.mmap) else None
        self._size = len(buf)
        self._offset = 0
        self.path = path
        self.set_endianness(True)

    @classmethod
    def from_path(cls, path, use_mmap=True):
        """
        Build a reader from the content of a file.

        :param path: Path to the file.
        :type path: str or os.PathLike

        :param use_mmap: If ``True``, the file is mapped in memory rather than
            read entirely. Files that cannot be mapped are read instead.
        :type use_mmap: bool
        """
        logger = cls.get_logger()
        try:
            with open(path, 'rb') as f:
                buf = None
                # Empty files cannot be mapped
                if use_mmap and f.seek(0, 2):
                    try:
                        buf = cls._map_file(f)
                    # Some files cannot be mapped even though they can be
                    # read, such as sysfs attributes.
                    except (OSError, ValueError) as e:
                        logger.debug(f'Could not map {path}, reading it instead: {e}')

                if buf is None:
                    f.seek(0)
                    buf = f.read()
        except FileNotFoundError as e:
            raise FileReaderError(FileReaderErrorCode.FILE_NOT_FOUND, msg=str(e)) from e
        except MemoryError as e:
            raise FileReaderError(FileReaderErrorCode.MEMORY_ALLOCATION_FAILURE, msg=str(e)) from e
        except OSError as e:
            raise FileReaderError(FileReaderErrorCode.IO_ERROR, msg=str(e)) from e

        logger.debug(f'Opened {path} ({len(buf)} bytes, mmap={isinstance(buf, mmap.mmap)})')
        return cls(buf, path=str(path))

    @staticmethod
    def _map_file(f):
        return mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)

    def close(self):
        """
        Release the memory mapping, if any.
        """
        if self._mmap is not None:
            self._mmap.close()
            self._mmap = None

    def __enter__(self):
        return self

    def __exit__(self, *args, **kwargs):
        self.close()

    @property
    def size(self):
        """
        Size in bytes of the underlying blob.
        """
        return self._size

    @property
    def offset(self):
        """
        Current offset of the cursor.
        """
        return self._offset

    def seek(self, offset):
        """
        Move the cursor to an absolute ``offset``.

        Seeking exactly at the end is allowed, so that an empty read can be
        attempted and reported.
        """
        if offset < 0 or offset > self._size:
            raise FileReaderError(
                FileReaderErrorCode.IO_ERROR,
                ReadOperation(offset, 0),
                msg=f'cannot seek beyond the end of data ({self._size} bytes)',
            )
        self._offset = offset

    @property
    def little_endian(self):
        return self._little_endian

    def set_endianness(self, little_endian):
        """
        Select the byte order of subsequent multi-byte reads.
        """
        self._little_endian = bool(little_endian)
        self._decoders = self._DECODERS[self._little_endian]

    def _read(self, size):
        offset = self._offset
        if offset + size > self._size:
            raise FileReaderError(
                FileReaderErrorCode.IO_ERROR,
                ReadOperation(offset, size),
                msg='read past the end of data',
            )

        x, = self._decoders[size].unpack_from(self._buf, offset)
        self._offset = offset + size
        return x

    def u8(self):
        return self._read(1)

    def u16(self):
        return self._read(2)

    def u32(self):
        return self._read(4)

    def read_cstring(self):
        """
        Read a NUL-terminated byte string and move the cursor past the NUL.

        :returns: The bytes before the terminator.
        :rtype: bytes
        """
        offset = self._offset
        end = self._buf.find(b'\x00', offset)
        if end < 0:
            raise FileReaderError(
                FileReaderErrorCode.IO_ERROR,
                ReadOperation(offset, self._size - offset + 1),
                msg='unterminated string',
            )

        self._offset = end + 1
        return bytes(self._buf[offset:end])

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
