"""
Setup script for the Anchor Regions Analysis package
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / 'README.md'
if readme_file.exists():
    with open(readme_file, 'r', encoding='utf-8') as f:
        long_description = f.read()
else:
    long_description = 'Anchor Regions Analysis - composite scores and clustering of U.S. metropolitan areas'

# Read requirements
requirements_file = Path(__file__).parent / 'requirements.txt'
if requirements_file.exists():
    with open(requirements_file, 'r', encoding='utf-8') as f:
        requirements = [
            line.strip() for line in f
            if line.strip() and not line.strip().startswith('#')
        ]
else:
    requirements = [
        'numpy>=1.24.0', 'pandas>=2.0.0', 'scipy>=1.11.0', 'matplotlib>=3.7.0',
        'seaborn>=0.13.0', 'scikit-learn>=1.3.0', 'statsmodels>=0.14.0', 'openpyxl>=3.1.0',
    ]

setup(
    name='anchor-regions-analysis',
    version='1.0.0',
    author='Anchor Regions Research Team',
    description='Composite indicator scores and clustering of metropolitan statistical areas',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    python_requires='>=3.9',
    install_requires=requirements,
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.0.0',
        ],
    },
    include_package_data=True,
    entry_points={
        'console_scripts': [
            'anchor-regions=anchor_regions.cli:main',
        ],
    },
)
