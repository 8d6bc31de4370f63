from setuptools import setup, find_packages


setup(
    name="cbf",
    version="0.1",
    packages=find_packages(),
    description="A writer for chunked, self-describing binary containers of multi-stream sequence data.",
    author="vercingetorx",
    install_requires=[
        "numpy>=1.24",
        "structlog>=23.1.0",
    ],
)
