#!/usr/bin/python3

# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2018 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

#
# A setup.py file
#

from setuptools import setup, find_packages
from os import path

here = path.abspath(path.dirname(__file__))

version = "1.0.0"

with open(path.join(here, 'README.md'), 'r') as f:
    long_description = f.read()

setup(
    name='idmprov',
    license='GPLv3+',
    version=version,
    description='Provision posix users and their primary groups into an ' +
                'LDAP directory',
    long_description=long_description,
    long_description_content_type='text/markdown',

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Systems Administration :: Authentication/Directory :: LDAP'],

    keywords='ldap directory posix user provisioning',
    packages=find_packages(exclude=['tests*', '*.tests', '*.tests.*']),

    scripts=[
        'cli/idmprov',
    ],

    install_requires=[
        'python-ldap',
        'argcomplete',
        'passlib',
        'setuptools',
        ],

    extras_require={
        'test': [
            'pytest',
        ],
    },
)
