"""
Repositories package

Each repository encapsulates database operations for a model:
- post_repository.py: posts and the denormalized tag field
- comment_repository.py: comments
- tag_repository.py / posttag_repository.py: the normalized tag store

Usage:
    from repositories.tag_repository import TagRepository
    ids = TagRepository.ensure_tags({"#alpha"})
"""
