#!/usr/bin/env python3
"""Create any missing tables in the configured database."""
import sys

from app import create_app
from models import db


def main():
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"Initialized database ({app.config['SQLALCHEMY_DATABASE_URI']})")
    return 0


if __name__ == '__main__':
    sys.exit(main())
