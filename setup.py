from setuptools import setup, find_packages
import re

# Read version from provcomp/__init__.py
with open('provcomp/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='prov-comp',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'prov-comp=provcomp.cli.__main__:main',
        ],
    },
    author='Compensation Analytics',
    description='Provider conversion factor optimization and productivity targets against market benchmarks.',
    python_requires='>=3.10',
)
