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

import os
from unittest import TestCase

from btfdecode.reader import FileReader, FileReaderError, FileReaderErrorCode, ReadOperation
from .utils import StorageTestCase


class TestFileReader(TestCase):
    def test_endianness(self):
        reader = FileReader(bytes([0x01, 0x02, 0x03, 0x04]))
        self.assertTrue(reader.little_endian)
        self.assertEqual(reader.u32(), 0x04030201)

        reader.seek(0)
        reader.set_endianness(False)
        self.assertFalse(reader.little_endian)
        self.assertEqual(reader.u32(), 0x01020304)

        reader.seek(0)
        self.assertEqual(reader.u16(), 0x0102)
        self.assertEqual(reader.u8(), 0x03)
        self.assertEqual(reader.offset, 3)

    def test_buffer_types(self):
        data = b'\x2a\x00'
        for buf in (data, bytearray(data), memoryview(data)):
            reader = FileReader(buf)
            self.assertEqual(reader.size, 2)
            self.assertEqual(reader.u16(), 42)

    def test_short_read(self):
        reader = FileReader(b'\x00\x01\x02')
        reader.seek(1)
        with self.assertRaises(FileReaderError) as cm:
            reader.u32()

        excep = cm.exception
        self.assertEqual(excep.code, FileReaderErrorCode.IO_ERROR)
        self.assertEqual(excep.read_operation, ReadOperation(1, 4))
        # A failed read does not move the cursor
        self.assertEqual(reader.offset, 1)

    def test_seek(self):
        reader = FileReader(b'abc')
        reader.seek(3)
        self.assertEqual(reader.offset, 3)

        for offset in (-1, 4):
            with self.assertRaises(FileReaderError) as cm:
                reader.seek(offset)
            self.assertEqual(cm.exception.code, FileReaderErrorCode.IO_ERROR)
            self.assertEqual(reader.offset, 3)

    def test_cstring(self):
        reader = FileReader(b'foo\x00\x00bar\x00')
        self.assertEqual(reader.read_cstring(), b'foo')
        self.assertEqual(reader.offset, 4)
        self.assertEqual(reader.read_cstring(), b'')
        self.assertEqual(reader.read_cstring(), b'bar')
        self.assertEqual(reader.offset, 9)

    def test_unterminated_cstring(self):
        reader = FileReader(b'\x00foo')
        reader.seek(1)
        with self.assertRaises(FileReaderError) as cm:
            reader.read_cstring()

        self.assertEqual(cm.exception.code, FileReaderErrorCode.IO_ERROR)
        self.assertEqual(cm.exception.read_operation, ReadOperation(1, 4))
        self.assertEqual(reader.offset, 1)

    def test_str(self):
        excep = FileReaderError(FileReaderErrorCode.IO_ERROR, ReadOperation(8, 4), msg='oops')
        self.assertEqual(str(excep), 'IO_ERROR at offset 8 (size=4): oops')
        self.assertEqual(str(FileReaderError(FileReaderErrorCode.UNKNOWN)), 'UNKNOWN')


class TestFileReaderPath(StorageTestCase):
    def _write(self, name, content):
        path = os.path.join(self.res_dir, name)
        with open(path, 'wb') as f:
            f.write(content)
        return path

    def test_from_path(self):
        path = self._write('data.bin', b'\x9f\xeb\x01\x00')
        for use_mmap in (True, False):
            with FileReader.from_path(path, use_mmap=use_mmap) as reader:
                self.assertEqual(reader.path, path)
                self.assertEqual(reader.size, 4)
                self.assertEqual(reader.u16(), 0xeb9f)
                self.assertEqual(reader.u8(), 1)

    def test_mmap_failure(self):
        class UnmappableFileReader(FileReader):
            @staticmethod
            def _map_file(f):
                raise OSError(13, 'Permission denied')

        path = self._write('data.bin', b'\x9f\xeb\x01\x00')
        with UnmappableFileReader.from_path(path, use_mmap=True) as reader:
            self.assertEqual(reader.size, 4)
            self.assertEqual(reader.u16(), 0xeb9f)

    def test_empty_file(self):
        path = self._write('empty.bin', b'')
        with FileReader.from_path(path) as reader:
            self.assertEqual(reader.size, 0)
            with self.assertRaises(FileReaderError):
                reader.u8()

    def test_missing_file(self):
        path = os.path.join(self.res_dir, 'missing.bin')
        with self.assertRaises(FileReaderError) as cm:
            FileReader.from_path(path)

        self.assertEqual(cm.exception.code, FileReaderErrorCode.FILE_NOT_FOUND)
        self.assertIsNone(cm.exception.read_operation)

    def test_directory(self):
        with self.assertRaises(FileReaderError) as cm:
            FileReader.from_path(self.res_dir)

        self.assertEqual(cm.exception.code, FileReaderErrorCode.IO_ERROR)

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
