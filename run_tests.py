#!/usr/bin/env python
"""
Test runner script for the roastery apps
Usage: python run_tests.py [app ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'roastery.core',
    'roastery.parties',
    'roastery.inventory',
    'roastery.production',
    'roastery.purchasing',
    'roastery.sales',
    'roastery.invoicing',
    'roastery.finance',
    'roastery.reports',
]

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'roastery.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    labels = [f'roastery.{name}' if not name.startswith('roastery.') else name for name in sys.argv[1:]]
    failures = test_runner.run_tests(labels or APPS)
    sys.exit(bool(failures))
