#! /usr/bin/env python3
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

import itertools

from setuptools import setup, find_packages


with open('README.rst', 'r') as f:
    long_description = f.read()

with open("btfdecode/version.py") as f:
    version_globals = dict()
    exec(f.read(), version_globals)
    btfdecode_version = version_globals['__version__']

packages = find_packages(include=['btfdecode', 'btfdecode.*'])

extras_require={
    "dev": [
        "pytest",
        "build",
        "twine",
    ],
}

# "all" extra requires all to install all the optional dependencies
extras_require['all'] = sorted(set(
    itertools.chain.from_iterable(extras_require.values())
))

python_requires = '>= 3.8'

if __name__ == "__main__":

    setup(
        name='btfdecode',
        license='Apache License 2.0',
        version=btfdecode_version,
        packages=packages,
        description='Decoder for the BPF Type Format (BTF)',
        long_description=long_description,
        long_description_content_type='text/x-rst',
        python_requires=python_requires,
        install_requires=[
            # For configuration files
            "ruamel.yaml >= 0.16.6",
            # Runtime check of configuration values
            "typeguard >= 4",
        ],

        extras_require=extras_require,
        classifiers=[
            "Programming Language :: Python :: 3 :: Only",
            "Operating System :: OS Independent",
            "Topic :: Software Development :: Libraries",
            "Intended Audience :: Developers",
        ],
    )

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
