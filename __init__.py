"""
Mongo_Ops - MongoDB Backup and Restore Operations Package

A toolkit for protecting a MongoDB database with driver-level snapshots:
connection management, compressed JSON archives that keep ObjectId typing
intact, restore with an operator safety pause, archive retention and
verification, plus a scheduled backup job and a command line.
"""

__version__ = "0.1.0"
__author__ = "RhythmX"
