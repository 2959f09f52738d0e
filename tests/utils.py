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

import struct
import tempfile
import shutil
from unittest import TestCase

from btfdecode.btf import BTFKind


class StorageTestCase(TestCase):
    """
    A base class for tests that also provides a directory
    """
    def setUp(self):
        self.res_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.res_dir)


class BTFBuilder:
    """
    Assemble a BTF blob, to feed the decoder with hand-crafted input.

    Type payloads are given as a sequence of 32-bit words. Negative values are
    stored in two's complement.
    """
    HEADER_SIZE = 24

    def __init__(self, little_endian=True):
        self.little_endian = little_endian
        self.strings = bytearray(b'\x00')
        self.types = bytearray()

    def _pack(self, fmt, *values):
        prefix = '<' if self.little_endian else '>'
        return struct.pack(prefix + fmt, *values)

    def add_string(self, s):
        """
        Add a string to the string table and return its offset.
        """
        off = len(self.strings)
        self.strings += s.encode('utf-8') + b'\x00'
        return off

    def add_type(self, kind, name=None, vlen=0, kind_flag=False, size_or_type=0, payload=(), name_off=None):
        """
        Append an entry to the type section and return its offset relative to
        the start of the section.
        """
        if name_off is None:
            name_off = self.add_string(name) if name else 0

        off = len(self.types)
        info = (int(kind_flag) << 31) | ((int(kind) & 0x1f) << 24) | (vlen & 0xffff)
        self.types += self._pack('III', name_off, info, size_or_type)
        for word in payload:
            self.types += self._pack('I', word & 0xffffffff)
        return off

    def add_int(self, name, size, bits, bit_offset=0, encoding=0, **kwargs):
        meta = (encoding << 24) | (bit_offset << 16) | bits
        return self.add_type(BTFKind.INT, name=name, size_or_type=size, payload=[meta], **kwargs)

    def build(self, magic=None, version=1, flags=0, hdr_len=None, type_len=None, extra_types=b''):
        """
        Build the blob.

        :param magic: Override the 16-bit magic, packed in the blob byte order.
        :param type_len: Override the length of the type section recorded in
            the header.
        :param extra_types: Raw bytes appended to the type section.
        """
        hdr_len = self.HEADER_SIZE if hdr_len is None else hdr_len
        types = bytes(self.types) + extra_types
        type_len = len(types) if type_len is None else type_len

        header = self._pack(
            'HBBIIIII',
            0xeb9f if magic is None else magic,
            version,
            flags,
            hdr_len,
            0,
            type_len,
            len(types),
            len(self.strings),
        )
        padding = b'\x00' * (hdr_len - len(header))
        return header + padding + types + bytes(self.strings)

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
