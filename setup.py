#!/usr/bin/env python
# -*- coding: latin-1 -*-
# #
# Copyright 2026-2026 Ghent University
#
# This file is part of cluster-quota,
# originally created by the HPC team of Ghent University (http://ugent.be/hpc/en),
# with support of Ghent University (http://ugent.be/hpc),
# the Flemish Supercomputer Centre (VSC) (https://www.vscentrum.be),
# the Flemish Research Foundation (FWO) (http://www.fwo.be/en)
# and the Department of Economy, Science and Innovation (EWI) (http://www.ewi-vlaanderen.be/en).
#
# All rights reserved.
#
# #
"""
cluster-quota base distribution setup.py
"""
from setuptools import find_packages, setup

PACKAGE = {
    'name': 'cluster-quota',
    'version': '1.0.0',
    'description': 'Report user and group quota across the mounted filesystems of a cluster',
    'author': 'cluster-quota developers',
    'license': 'LGPLv2+',
    'python_requires': '>=3.6',
    'package_dir': {'': 'lib'},
    'packages': find_packages('lib'),
    'scripts': ['bin/cluster_quota.py'],
    'install_requires': [
        'vsc-base >= 3.0.6',
    ],
    'extras_require': {
        'test': [
            'mock',
            'pytest',
            'vsc-install >= 0.15.3',
        ],
    },
}

if __name__ == '__main__':
    setup(**PACKAGE)
