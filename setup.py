from setuptools import setup, find_packages

setup(
    name='plugin-updater',
    version='0.1.0',
    description='Keeps server plugin jars up to date from their release sources',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'PyYAML',
        'rich',
        'platformdirs',
        'jsonpath-ng',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'plugin-updater=plugin_updater.cli:main',
        ],
    },
)
