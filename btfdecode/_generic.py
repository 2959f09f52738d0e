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
Runtime checks of :mod:`typing` hints, backed by :mod:`typeguard`.
"""

from typing import Union

import typeguard


def check_type(x, classinfo):
    """
    Equivalent of ``isinstance()`` that will also work with typing hints.

    :param classinfo: A single hint or a list, tuple or set of hints. ``None`` is
        accepted in the collection as a shorthand for ``type(None)``.

    :raises TypeError: if ``x`` does not match.
    """
    # Typing hints such as List[int] are iterable too, so only plain
    # collections are treated as a sequence of hints.
    if isinstance(classinfo, (list, tuple, set, frozenset)):
        typ = Union[tuple(
            type(None) if hint is None else hint
            for hint in classinfo
        )]
    else:
        typ = classinfo

    try:
        typeguard.check_type(
            value=x,
            expected_type=typ,
            forward_ref_policy=typeguard.ForwardRefPolicy.ERROR,
            collection_check_strategy=typeguard.CollectionCheckStrategy.ALL_ITEMS,
        )
    except typeguard.TypeCheckError as e:
        raise TypeError(str(e))


def is_instance(obj, classinfo):
    """
    Same as builtin ``isinstance()`` but works with type hints.
    """
    try:
        check_type(obj, classinfo)
    except TypeError:
        return False
    else:
        return True

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
