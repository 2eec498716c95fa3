"""Read-side composition of tasks with their images."""

import concurrent.futures
from collections import defaultdict
from typing import Dict, List

from aws_lambda_powertools import Logger, Tracer

from annotation_blocks.api.annotations_api.models import Image, Task
from annotation_blocks.api.annotations_api.ordering import sort_images, sort_tasks
from annotation_blocks.api.annotations_api.repositories.images import (
    list_images_for_block,
)
from annotation_blocks.api.annotations_api.repositories.tasks import list_tasks
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="task-image-join", child=True)
tracer = Tracer(service="task-image-join")


@tracer.capture_method
def list_tasks_with_images(store: KeyedStore, block_id: str) -> List[Task]:
    """
    Tasks of a block, newest first, each carrying its images in order.

    Tasks and images are fetched in parallel. Images whose task no longer
    exists are left out.
    """
    with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
        tasks_future = executor.submit(list_tasks, store, block_id)
        images_future = executor.submit(list_images_for_block, store, block_id)
        tasks = tasks_future.result()
        images = images_future.result()

    images_by_task: Dict[str, List[Image]] = defaultdict(list)
    for image in images:
        if image.task_id:
            images_by_task[image.task_id].append(image)

    for task in tasks:
        task.images = sort_images(images_by_task.pop(task.task_id, []))

    if images_by_task:
        logger.debug(
            "Ignoring images attached to missing tasks",
            extra={"block_id": block_id, "task_ids": list(images_by_task)},
        )

    return sort_tasks(tasks)
