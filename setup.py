from setuptools import setup, find_packages

setup(
    name="nbrbeam",
    version="0.1.0",
    description="NBR 6118 verification of reinforced concrete beam sections under crane-runway load envelopes",
    author="HST.AI Engineering",
    author_email="ha.nguyen@hydrostructai.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"nbrbeam": ["data/*.yaml"]},
    include_package_data=True,
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pandas>=2.0.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.4.0"],
        "dev": ["pytest>=7.4.0", "black>=23.0.0"],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
