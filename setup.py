#!/usr/bin/env python3
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4
"""Setup tools for slsgen"""

import os
import subprocess
from setuptools import setup, find_packages

basedir = os.path.dirname(os.path.abspath(__file__))

scripts = [x for x in os.listdir(os.path.join(basedir, 'bin')) if os.path.isfile(os.path.join(basedir, 'bin', x))]
requires = [ 'PyYAML', 'ClusterShell', 'Jinja2' ]

try:
    ver = subprocess.check_output(["git", "describe"], cwd=basedir, stderr=subprocess.DEVNULL).decode().strip().split('-')
except (OSError, subprocess.CalledProcessError):
    ver = ['0.1']

setup(name = 'slsgen',
    version = ver[0].strip('v'),
    description = 'SLS state generator',
    long_description = 'Generate the hardware and network state of an HPC cluster from seed files',
    package_dir = {'': 'lib'},
    packages = find_packages('lib'),
    scripts = ['bin/%s' % x for x in scripts],
    python_requires = '>=3.6',
    install_requires = requires,
    extras_require = { 'tests': [ 'pytest' ] }
    )
