#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import setuptools


class _CustomCommand(setuptools.Command):

    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass


class Pep8Command(_CustomCommand):

    description = "perform PEP8 checks"

    def run(self):
        build_py_command = self.get_finalized_command('build_py')
        paths = [path for (_, _, path) in build_py_command.find_all_modules()]

        import pep8
        style_guide = pep8.StyleGuide()
        check_report = style_guide.check_files(paths)
        check_report.print_statistics()

        if check_report.total_errors:
            raise SystemExit(os.EX_DATAERR)


class FlakeyCommand(_CustomCommand):

    description = "perform flakey checks"

    def run(self):
        import flakey

        build_py_command = self.get_finalized_command('build_py')
        error_count = 0
        for (_, _, path) in build_py_command.find_all_modules():
            warning = flakey.check_path(path)
            if isinstance(warning, flakey.checker.Checker):
                error_count += flakey.print_messages(warning)
            else:
                raise ValueError("Unexpected check_path result.")

        if error_count:
            raise SystemExit(os.EX_DATAERR)


setuptools.setup(
    # Name and version.
    name="rmanager",
    version="0.1.0",
    # Package directories.
    packages=[
        "rmanager",
        "rmanager.commands",
        "rmanager.connection",
        "rmanager.endpoints",
        "rmanager.enums",
        "rmanager.exceptions",
        "rmanager.query",
        "rmanager.shared",
        "rmanager.tests",
        "rmanager.tools",
        "rmanager.topology",
        "rmanager.utilities",
    ],
    # Entry points.
    entry_points={
        "console_scripts": [
            "rmanager-topology = rmanager.tools:topology",
            "rmanager-command = rmanager.tools:command",
        ],
    },
    # Other files.
    package_data={
    },
    # Dependencies.
    install_requires=[
        # redis-py is used for all communications.
        "redis>=5.0",
    ],
    extras_require={
        # Style checkers run by "setup.py pep8" and "setup.py flakey".
        "lint": ["pep8", "flakey"],
    },
    # Custom commands.
    cmdclass={
        "pep8": Pep8Command,
        "flakey": FlakeyCommand,
    },
    # Enable "setup.py test".
    test_suite="rmanager.tests",
    # Allow archiving.
    zip_safe=True,
    # Package index metadata.
    author="Pavel Perestoronin",
    author_email="eigenein@gmail.com",
    maintainer="Pavel Perestoronin",
    maintainer_email="eigenein@gmail.com",
    description="Redis console command dispatch and topology discovery",
    long_description=open("README.markdown", "rt").read(),
    license="Apache License, Version 2.0",
    keywords=["cluster", "redis", "replication", "console"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
)
