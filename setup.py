#!/usr/bin/env python

from setuptools import setup


kwargs = {
    'name': 'epke',
    'version': '0.1.0',
    'packages': ['epke'],
    'python_requires': '>=3.8',

    # Metadata
    'author': 'The EPKE Development Team',
    'description': 'Exponential point-kinetics solver with coarse/fine '
                   'solver composition',
    'classifiers': [
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Natural Language :: English',
        'Topic :: Scientific/Engineering',
        'Programming Language :: Python :: 3',
    ],

    # Dependencies
    'install_requires': [
        'numpy', 'scipy', 'h5py', 'lxml',
    ],
    'extras_require': {
        'test': ['pytest'],
    },
    'entry_points': {
        'console_scripts': [
            'epke-run=epke._cli:main',
        ],
    },
}

setup(**kwargs)
