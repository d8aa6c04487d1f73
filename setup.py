import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pydssio",
    version="0.1.0",
    author="Tyler Hatch",
    author_email="tyler.hatch@water.ca.gov",
    description="python library for reading and writing HEC-DSS 7 records",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/SGMOModeling/pydssio.git",
    package_dir={"": "src"},
    packages=setuptools.find_packages("src"),
    install_requires=[
        "numpy",
        "pydantic>=2",
    ],
    extras_require={
        "pandas": ["pandas"],
        "test": ["pytest", "pandas"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
)
