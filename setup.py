from setuptools import setup, find_packages

setup(
    name="nftjson",
    version="0.4.1",
    description="Typed model, codec and apply helper for the nftables JSON format",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2",
        "pydantic-settings>=2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'nftjson-check=nftjson.main:main',
        ],
    },
)
