#!/usr/bin/env python3
"""
Wrapper script to run the wildfly-operator with Kopf.

Loads the operator module (which registers handlers via decorators), then
launches Kopf's CLI with all standard arguments.

Usage:
    python run_operator.py [any kopf run arguments]

Examples:
    python run_operator.py --verbose --all-namespaces
    python run_operator.py -n my-namespace --log-format=json
"""

import sys

if __name__ == '__main__':
    import kopf.cli

    import wildfly.app  # noqa: F401

    # Behave as if the user called: kopf run <args>
    sys.argv.insert(1, 'run')

    sys.exit(kopf.cli.main(prog_name="kopf"))
