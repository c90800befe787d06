#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify MongoDB and Cloudinary settings.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from app.db.mongodb import test_mongo_connection, init_mongo_indexes
from app.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("STUDENT COLLAB HUB - CONNECTION CHECK")
    print("=" * 50)

    # MongoDB
    print("\n[1] Checking MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
        init_mongo_indexes()
        print("    ✅ Indexes: CREATED")
    else:
        print("    ❌ MongoDB: FAILED")

    # Cloudinary (configuration only, nothing is uploaded)
    print("\n[2] Checking Cloudinary settings...")
    if settings.cloudinary_configured:
        print(f"    Cloud name: {settings.cloudinary_cloud_name}")
        print("    ✅ Cloudinary: CONFIGURED")
    else:
        print("    ⚠️  Cloudinary: credentials not set, uploads will fail")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
