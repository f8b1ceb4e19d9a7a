from setuptools import setup, find_packages

setup(
    name="optswap",
    version="1.0",
    description="Bilevel strain design with reaction knockouts and cofactor swaps for the COBRApy framework",
    long_description=("Bilevel strain design package for the COBRApy framework. OptKnock, RobustKnock, OptSwap and "
                      "OptSwapYield problems are reformulated into single-level MILPs and solved with GLPK or CPLEX."),
    long_description_content_type="text/plain",
    license="Apache License 2.0",
    python_requires=">=3.7",
    packages=find_packages(include=["optswap", "optswap.*"]),
    install_requires=["cobra", "optlang", "swiglpk", "scipy", "numpy", "pandas", "psutil"],
    extras_require={
        "cplex": ["cplex"],
        "test": ["pytest", "pytest-timeout"],
    },
    classifiers=[
        "Intended Audience :: Science/Research", "Development Status :: 3 - Alpha", "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10", "Programming Language :: Python :: 3.11", "Programming Language :: Python :: 3.12",
        "Natural Language :: English", "Operating System :: OS Independent", "Topic :: Scientific/Engineering :: Bio-Informatics"
    ],
    keywords=["metabolism", "constraint-based", "mixed-integer", "strain design", "bilevel optimization", "cofactor swap"],
    zip_safe=False,
)
