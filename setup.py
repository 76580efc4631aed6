#!/usr/bin/env python
from setuptools import find_packages, setup

VERSION = "1.0.0"
INSTALL_REQUIREMENTS = [
    "Django>=4.2",
    "boto3",
    "celery[redis]>=5.3",
    "django-celery-beat",
    "django-ninja>=1.0,<1.5",
    "django-redis",
    "django-storages[s3]",
    "django-structlog",
    "psycopg2-binary",
    "requests",
    "sentry-sdk",
    "structlog",
]
TEST_REQUIREMENTS = ["pytest", "pytest-django"]
SCRIPTS = ["manage.py"]
DESCRIPTION = "Exercise library and background import jobs for fitlog"
CLASSIFIERS = """\
Environment :: Web Environment
Framework :: Django
Programming Language :: Python
Programming Language :: Python :: 3
""".splitlines()

with open("README.md", "r") as f:
    LONG_DESCRIPTION = f.read()


setup(
    name="fitlog",
    version=VERSION,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["*.tests", "*.tests.*"]),
    include_package_data=True,
    scripts=SCRIPTS,
    install_requires=INSTALL_REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    python_requires=">=3.10",
    classifiers=CLASSIFIERS,
)
