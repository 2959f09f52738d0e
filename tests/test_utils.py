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
import logging
from typing import List, Optional
from unittest import TestCase

from btfdecode.utils import Loggable, get_cls_name, setup_logging
from btfdecode._generic import check_type, is_instance
from btfdecode.version import format_version, version_tuple
import btfdecode
from btfdecode.btf import BTF
from .utils import StorageTestCase


class TestLoggable(TestCase):
    def test_logger_name(self):
        self.assertEqual(BTF.get_logger().name, 'btfdecode.btf.BTF')
        self.assertEqual(BTF.get_logger('foo').name, 'btfdecode.btf.BTF.foo')

    def test_get_cls_name(self):
        self.assertEqual(get_cls_name(BTF), 'btfdecode.btf.BTF')
        self.assertEqual(get_cls_name(BTF, fully_qualified=False), 'BTF')
        self.assertEqual(get_cls_name(int), 'int')
        self.assertEqual(get_cls_name(None), 'None')


class TestVersion(TestCase):
    def test_version(self):
        self.assertEqual(format_version((1, 2, 3)), '1.2.3')
        self.assertEqual(btfdecode.__version__, format_version(version_tuple))


class TestCheckType(TestCase):
    def test_check_type(self):
        check_type(1, [int])
        check_type(None, [str, None])
        check_type([1, 2], List[int])

        with self.assertRaises(TypeError):
            check_type('a', [int])

        with self.assertRaises(TypeError):
            check_type([1, 'a'], List[int])

    def test_is_instance(self):
        self.assertTrue(is_instance(None, Optional[int]))
        self.assertFalse(is_instance(True, [str]))

    def test_bare_hint(self):
        self.assertFalse(is_instance([1, 'a'], List[int]))
        self.assertFalse(is_instance(3, List[int]))
        self.assertTrue(is_instance([1, 2], List[int]))

        self.assertTrue(is_instance(None, [List[int], None]))
        self.assertFalse(is_instance(['a'], (List[int], None)))


class TestSetupLogging(StorageTestCase):
    def tearDown(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        logging.captureWarnings(False)
        super().tearDown()

    def test_level(self):
        setup_logging(level=logging.DEBUG)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_conf_file(self):
        path = os.path.join(self.res_dir, 'logging.conf')
        with open(path, 'w') as f:
            f.write(
                '[loggers]\n'
                'keys=root\n'
                '\n'
                '[handlers]\n'
                'keys=console\n'
                '\n'
                '[formatters]\n'
                'keys=simple\n'
                '\n'
                '[logger_root]\n'
                'level=WARNING\n'
                'handlers=console\n'
                '\n'
                '[handler_console]\n'
                'class=StreamHandler\n'
                'formatter=simple\n'
                'args=(sys.stderr,)\n'
                '\n'
                '[formatter_simple]\n'
                'format=%(levelname)s %(message)s\n'
            )

        setup_logging(path)
        self.assertEqual(logging.getLogger().level, logging.WARNING)

    def test_missing_conf_file(self):
        with self.assertRaises(FileNotFoundError):
            setup_logging(os.path.join(self.res_dir, 'missing.conf'))

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
