import os

from setuptools import find_packages, setup


def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()


setup(
    name="cryocov",
    version="0.1.0",
    include_package_data=True,
    description="Mean and covariance estimation of cryo-EM volumes from projection images",
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    license="GPLv3",
    python_requires=">=3.8",
    install_requires=[
        "confuse>=2.0.0",
        "finufft",
        "numpy",
        "pyfftw",
        "scipy",
        "setuptools>=0.41",
        "threadpoolctl",
        "tqdm",
    ],
    # Here we can call out specific extras,
    #   for example gpu packages which may not install for all users,
    #   or developer tools that are handy but not required for users.
    extras_require={
        "gpu": ["cupy", "cufinufft"],
        "nfft": ["pynfft"],
        "dev": [
            "black",
            "flake8>=3.7.0",
            "isort",
            "pytest",
            "pytest-cov",
            "pytest-random-order",
            "tox",
        ],
    },
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"cryocov": ["config_default.yaml", "logging.conf"]},
    zip_safe=True,
    test_suite="tests",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
    ],
)
