"""
Student Collab Hub
A social platform where students share study notes and job posts.

Architecture:
- MongoDB: users, posts, comments (linked by ObjectId references)
- FastAPI: REST API under /api
- Cloudinary: hosted image storage for attachments and avatars
"""

__version__ = "1.0.0"
__author__ = "Student"
