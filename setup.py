"""
codekg Setup Script

Install with: pip install -e .
Tests:        pip install -e ".[test]" && pytest
"""

from setuptools import setup, find_packages

setup(
    name='codekg',
    version='0.1.0',
    description='Hybrid graph retrieval and self-verifying question answering over code knowledge graphs',
    author='codekg contributors',
    packages=find_packages(include=['codekg', 'codekg.*']),
    package_data={
        'codekg': ['config/*.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'pydantic>=2.5.0',
        'pyyaml>=6.0.1',
        'numpy>=1.26.0',
        'aiohttp>=3.9.0',
        'click>=8.1.0',
        'structlog>=23.2.0',
        'falkordb>=1.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'codekg=codekg.cli:cli',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Software Development',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
)
