#!/usr/bin/env python3
"""
Drop every table of the configured database and create them again.
Usage:
  python reset_db.py [--db-uri sqlite:///lending.db]
"""
import argparse
import sys

from app import create_app
from models import db


def reset_database():
    db.session.remove()
    db.drop_all()
    db.create_all()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Drop and recreate all tables')
    parser.add_argument('--db-uri', help='optional DB URI to override app config')
    args = parser.parse_args(argv)

    config = {}
    if args.db_uri:
        config['SQLALCHEMY_DATABASE_URI'] = args.db_uri

    app = create_app(config)
    with app.app_context():
        reset_database()
        print(f"Recreated database ({app.config['SQLALCHEMY_DATABASE_URI']})")
    return 0


if __name__ == '__main__':
    sys.exit(main())
