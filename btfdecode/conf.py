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
Configuration management.

Configuration classes describe their allowed keys with :class:`KeyDesc`
instances gathered under a :class:`TopLevelKeyDesc`. Values can come from
several named sources, the most recently added one winning unless it was added
as a fallback.
"""

import abc
import codecs
import copy
import logging
import re
import textwrap
from collections.abc import Mapping
from pathlib import Path

from ruamel.yaml import YAML

from btfdecode.utils import Loggable, get_cls_name
from btfdecode._generic import check_type


class ConfigKeyError(KeyError):
    """
    Exception raised when a key is not found in the config instance.
    """
    def __init__(self, msg, key=None, src=None):
        # pylint: disable=super-init-not-called
        self.msg = msg
        self.key = key
        self.src = src

    def __str__(self):
        return self.msg


class TopLevelKeyError(ValueError):
    """
    Exception raised when no top-level key matches the expected one in the
    given configuration file.
    """
    def __init__(self, key):
        self.key = key

    def __str__(self):
        return f'Could not find top-level key "{self.key}"'


class KeyDescBase(abc.ABC):
    """
    Base class for configuration files key descriptor.

    This allows defining the structure of the configuration file, in order
    to sanitize user input and generate help snippets.
    """
    _VALID_NAME_PATTERN = r'^[a-zA-Z0-9-]+$'

    def __init__(self, name, help):
        # pylint: disable=redefined-builtin

        self._check_name(name)
        self.name = name
        self.help = help
        self.parent = None

    @classmethod
    def _check_name(cls, name):
        if not re.match(cls._VALID_NAME_PATTERN, name):
            raise ValueError(f'Invalid key name "{name}". Key names must match: {cls._VALID_NAME_PATTERN}')

    @property
    def qualname(self):
        """
        "Qualified" name of the key.

        This is a slash-separated path in the config file from the root to that
        key: ``<parent qualname>/<name>``
        """
        if self.parent is None:
            return self.name
        return f'{self.parent.qualname}/{self.name}'

    @abc.abstractmethod
    def get_help(self):
        """
        Get a help message describing the key.
        """

    @abc.abstractmethod
    def validate_val(self, val):
        """
        Validate a value to be used for that key.

        :raises TypeError: When the value has the wrong type
        :raises ValueError: When the value is rejected by the key validator
        """


class KeyDesc(KeyDescBase):
    """
    Key descriptor describing a leaf key in the configuration.

    :param name: Name of the key

    :param help: Short help message describing the use of that key

    :param classinfo: sequence of allowed types or typing hints for that key.
        As a special case, `None` is allowed in that sequence of types, even
        though it is not strictly speaking a type.
    :type classinfo: collections.abc.Sequence

    :param validator: Optional callable checking the value once its type is
        known to be correct. It signals an invalid value by raising
        :exc:`ValueError` or :exc:`LookupError`.
    :type validator: collections.abc.Callable or None
    """

    def __init__(self, name, help, classinfo, validator=None):
        # pylint: disable=redefined-builtin

        super().__init__(name=name, help=help)
        self.classinfo = tuple(classinfo)
        self.validator = validator

    def validate_val(self, val):
        classinfo = self.classinfo
        try:
            check_type(val, classinfo)
        except TypeError as e:
            classinfo = ' or '.join(get_cls_name(cls) for cls in classinfo)
            raise TypeError(f'Key "{self.qualname}" is an instance of {get_cls_name(type(val))}, but should be instance of {classinfo}: {e}. Help: {self.help}', self.qualname)

        if self.validator is not None:
            try:
                self.validator(val)
            except (ValueError, LookupError) as e:
                raise ValueError(f'Key "{self.qualname}" has an invalid value {val!r}: {e}. Help: {self.help}') from e

    def get_help(self):
        classinfo = ' or '.join(
            get_cls_name(cls, fully_qualified=False)
            for cls in self.classinfo
        )
        help_ = textwrap.fill(self.help, width=60) if self.help else ''
        return f'|- {self.name} ({classinfo}): {help_}'


class TopLevelKeyDesc(KeyDescBase, Mapping):
    """
    Top-level key descriptor, holding the leaf keys of a configuration class.

    :param name: Name of the top-level key used in configuration files.
    :type name: str

    :param children: Leaf keys.
    :type children: collections.abc.Sequence(KeyDesc)
    """

    def __init__(self, name, help, children):
        # pylint: disable=redefined-builtin
        super().__init__(name=name, help=help)
        self.children = list(children)
        for key_desc in self.children:
            key_desc.parent = self

    @property
    def _key_map(self):
        return {
            key_desc.name: key_desc
            for key_desc in self.children
        }

    def __iter__(self):
        return iter(self._key_map)

    def __len__(self):
        return len(self.children)

    def __getitem__(self, key):
        self.check_allowed_key(key)
        return self._key_map[key]

    def check_allowed_key(self, key):
        """
        Checks that a given key is allowed under that top-level key.
        """
        if key not in self._key_map:
            raise ConfigKeyError(
                f'Key "{self.name}/{key}" is not allowed. Allowed keys are: {", ".join(sorted(self._key_map))}',
                key=key,
            )

    def validate_val(self, conf):
        """
        Validate a mapping to be used as a source
        """
        if not isinstance(conf, Mapping):
            raise TypeError(f'Configuration of {self.name} must be a Mapping')
        for key, val in conf.items():
            self[key].validate_val(val)

    def get_help(self):
        children = '\n'.join(
            key_desc.get_help()
            for key_desc in self.children
        )
        return f'{self.name}: {self.help}\n{children}'


class SimpleConf(Loggable, Mapping):
    """
    Base class providing layered configuration management.

    :param conf: Mapping to initialize the configuration with.
    :type conf: collections.abc.Mapping or None

    :param src: Name of the source added when passing ``conf``
    :type src: str

    :param add_default_src: Add :attr:`DEFAULT_SRC` as a fallback source named
        ``default``.
    :type add_default_src: bool

    The class inherits from :class:`collections.abc.Mapping`, which means it
    can be used like a readonly dict. Writing to it is handled by
    :meth:`add_src` that allows naming the source of values that are stored.
    """

    @property
    @abc.abstractmethod
    def STRUCTURE(self):
        """
        Class attribute defining the structure of the configuration file, as a
        instance of :class:`TopLevelKeyDesc`
        """

    DEFAULT_SRC = {}
    """
    Source added automatically using :meth:`add_src` under the name 'default'
    when instances are built.
    """

    def __init__(self, conf=None, src='user', add_default_src=True):
        self._key_map = {}
        self._src_prio = []
        self.add_src(src, conf)

        if self.DEFAULT_SRC and add_default_src:
            self.add_src('default', self.DEFAULT_SRC, fallback=True)

    @classmethod
    def get_help(cls):
        return cls.STRUCTURE.get_help()

    @classmethod
    def from_map(cls, mapping, add_default_src=True):
        """
        Create a new configuration instance, using the output of :meth:`to_map`
        """
        return cls(mapping, add_default_src=add_default_src)

    def to_map(self):
        """
        Export the configuration as a plain dictionary of effective values.
        """
        return dict(self.items())

    @classmethod
    def from_yaml_map(cls, path, add_default_src=True):
        """
        Load the configuration from a YAML file, where the keys are hosted
        under the top-level key specified in ``STRUCTURE``.

        :param path: Path to the YAML file
        :type path: str or pathlib.Path
        """
        yaml = YAML(typ='safe')
        mapping = yaml.load(Path(path))

        if not isinstance(mapping, Mapping):
            raise ValueError(f'Top-level object is expected to be a mapping but got: {mapping.__class__.__qualname__}')

        toplevel = cls.STRUCTURE.name
        try:
            data = mapping[toplevel]
        except KeyError:
            # pylint: disable=raise-missing-from
            raise TopLevelKeyError(toplevel)

        return cls.from_map(data or {}, add_default_src=add_default_src)

    def add_src(self, src, conf, filter_none=False, fallback=False):
        """
        Add a source of configuration.

        :param src: Name of the source to add
        :type src: str

        :param conf: Mapping of key/values to overlay
        :type conf: collections.abc.Mapping or None

        :param filter_none: Ignores the keys that have a ``None`` value.
        :type filter_none: bool

        :param fallback: If True, the source will be added at the end of the
            priority list. By default, the source will have the highest
            priority.
        :type fallback: bool
        """
        conf = {} if conf is None else conf
        if filter_none:
            conf = {
                k: v for k, v in conf.items()
                if v is not None
            }

        self.STRUCTURE.validate_val(conf)

        logger = self.logger
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f'Setting source "{src}": {dict(conf)}')

        for key, val in conf.items():
            self._key_map.setdefault(key, {})[src] = val

        if src not in self._src_prio:
            if fallback:
                self._src_prio.append(src)
            else:
                self._src_prio.insert(0, src)

    def resolve_src(self, key):
        """
        Get the source name that will be used to serve the value of ``key``.
        """
        key_desc = self.STRUCTURE[key]
        srcs = self._key_map.get(key, {})
        for src in self._src_prio:
            if src in srcs:
                return src

        raise ConfigKeyError(
            f'Could not find any source for key "{key_desc.qualname}"',
            key=key_desc.qualname,
        )

    def get_key(self, key, src=None):
        """
        Get the value of the given key. It returns a deepcopy of the value.

        :param key: name of the key to lookup
        :type key: str

        :param src: If not None, look up the value of the key in that source
        :type src: str or None
        """
        key_desc = self.STRUCTURE[key]
        if src is None:
            src = self.resolve_src(key)

        try:
            val = self._key_map[key][src]
        except KeyError:
            # pylint: disable=raise-missing-from
            raise ConfigKeyError(
                f'Key "{key_desc.qualname}" is not available from source "{src}"',
                key=key_desc.qualname,
                src=src,
            )

        return copy.deepcopy(val)

    def __getitem__(self, key):
        return self.get_key(key)

    def __iter__(self):
        return iter(
            key
            for key in self.STRUCTURE
            if key in self._key_map
        )

    def __len__(self):
        return sum(1 for _ in self)

    def __str__(self):
        return '\n'.join(
            f'{key}: {val} (from "{self.resolve_src(key)}")'
            for key, val in self.items()
        )


class BTFParserConf(SimpleConf):
    """
    Options of the BTF decoder.

    Example YAML::

        btf-parser-conf:
            string-encoding: utf-8
            string-errors: strict
            use-mmap: false
    """

    STRUCTURE = TopLevelKeyDesc('btf-parser-conf', 'BTF decoder options', (
        KeyDesc('string-encoding', 'Codec used to decode the string table entries', [str], validator=codecs.lookup),
        KeyDesc('string-errors', 'Codec error handler used when a string cannot be decoded, such as "strict" or "replace"', [str], validator=codecs.lookup_error),
        KeyDesc('use-mmap', 'Map BTF files in memory instead of reading them', [bool]),
    ))

    DEFAULT_SRC = {
        'string-encoding': 'utf-8',
        'string-errors': 'replace',
        'use-mmap': True,
    }

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
