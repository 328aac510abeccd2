#!/usr/bin/env python

from setuptools import setup

setup(
    name="essync",
    version="0.1.0",
    description="Keep elasticsearch indices in sync with the records of a document store",
    packages=["essync", "essync.mapping", "essync.documents"],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.11",
    keywords=["elasticsearch", "search", "mapping", "indexing"],
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: Database",
    ],
    install_requires=[
        "elasticsearch[async]~=8.6",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
    ],
    extras_require={
        'dev': [
            'pytest',
            'anyio',
            'mypy',
            'flake8',
            'pre-commit',
        ]
    },
    entry_points={
        'console_scripts': [
            'essync = essync.__main__:main'
        ]
    },
)
