"""
Annotations API Handlers.

All route handlers using AWS Powertools and Pydantic V2.
Each file handles exactly one API endpoint (method + resource).
"""

from . import (
    blocks_get,
    blocks_ID_delete,
    blocks_ID_get,
    blocks_ID_images_get,
    blocks_ID_images_post,
    blocks_ID_labels_get,
    blocks_ID_labels_ID_delete,
    blocks_ID_labels_ID_get,
    blocks_ID_labels_ID_patch,
    blocks_ID_labels_post,
    blocks_ID_patch,
    blocks_ID_tasks_get,
    blocks_ID_tasks_ID_delete,
    blocks_ID_tasks_ID_get,
    blocks_ID_tasks_ID_images_get,
    blocks_ID_tasks_ID_images_post,
    blocks_ID_tasks_ID_patch,
    blocks_ID_tasks_post,
    blocks_post,
    images_ID_annotations_batch_post,
    images_ID_annotations_get,
    images_ID_annotations_ID_delete,
    images_ID_annotations_ID_get,
    images_ID_annotations_ID_patch,
    images_ID_annotations_post,
    images_ID_delete,
    images_ID_get,
    images_ID_patch,
    users_me_get,
    users_me_patch,
    users_post,
)

__all__ = [
    "blocks_get",
    "blocks_post",
    "blocks_ID_get",
    "blocks_ID_patch",
    "blocks_ID_delete",
    "blocks_ID_labels_get",
    "blocks_ID_labels_post",
    "blocks_ID_labels_ID_get",
    "blocks_ID_labels_ID_patch",
    "blocks_ID_labels_ID_delete",
    "blocks_ID_tasks_get",
    "blocks_ID_tasks_post",
    "blocks_ID_tasks_ID_get",
    "blocks_ID_tasks_ID_patch",
    "blocks_ID_tasks_ID_delete",
    "blocks_ID_tasks_ID_images_get",
    "blocks_ID_tasks_ID_images_post",
    "blocks_ID_images_get",
    "blocks_ID_images_post",
    "images_ID_get",
    "images_ID_patch",
    "images_ID_delete",
    "images_ID_annotations_get",
    "images_ID_annotations_post",
    "images_ID_annotations_batch_post",
    "images_ID_annotations_ID_get",
    "images_ID_annotations_ID_patch",
    "images_ID_annotations_ID_delete",
    "users_post",
    "users_me_get",
    "users_me_patch",
]


def register_all_routes(app):
    """
    Register all handler routes with the API Gateway resolver.

    Args:
        app: APIGatewayRestResolver instance
    """
    # Block endpoints
    blocks_get.register_route(app)
    blocks_post.register_route(app)
    blocks_ID_get.register_route(app)
    blocks_ID_patch.register_route(app)
    blocks_ID_delete.register_route(app)

    # Label endpoints
    blocks_ID_labels_get.register_route(app)
    blocks_ID_labels_post.register_route(app)
    blocks_ID_labels_ID_get.register_route(app)
    blocks_ID_labels_ID_patch.register_route(app)
    blocks_ID_labels_ID_delete.register_route(app)

    # Task endpoints
    blocks_ID_tasks_get.register_route(app)
    blocks_ID_tasks_post.register_route(app)
    blocks_ID_tasks_ID_get.register_route(app)
    blocks_ID_tasks_ID_patch.register_route(app)
    blocks_ID_tasks_ID_delete.register_route(app)
    blocks_ID_tasks_ID_images_get.register_route(app)
    blocks_ID_tasks_ID_images_post.register_route(app)

    # Image endpoints
    blocks_ID_images_get.register_route(app)
    blocks_ID_images_post.register_route(app)
    images_ID_get.register_route(app)
    images_ID_patch.register_route(app)
    images_ID_delete.register_route(app)

    # Annotation endpoints
    images_ID_annotations_get.register_route(app)
    images_ID_annotations_post.register_route(app)
    images_ID_annotations_batch_post.register_route(app)
    images_ID_annotations_ID_get.register_route(app)
    images_ID_annotations_ID_patch.register_route(app)
    images_ID_annotations_ID_delete.register_route(app)

    # User endpoints
    users_post.register_route(app)
    users_me_get.register_route(app)
    users_me_patch.register_route(app)
