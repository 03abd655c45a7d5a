import setuptools


setuptools.setup(
    name='ircchain',
    version='0.1.0',
    author='ircchain developers',
    packages=['ircchain'],
    package_dir={'': 'src'},
    package_data={
        'ircchain': ['data/*.toml'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
    ],
    python_requires='>=3.8',
    install_requires=[
        'click>=7.0',
        'attrs>=19.1',
        'toml',
        'schematics',
        'rollbar',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'ircchain = ircchain.cli:main',
            'ircchain_util = ircchain.cli:util',
        ],
    },
)
