"""
Queue Consumer for Directory Sync Tasks

Background task that polls the queue and dispatches each message to the
handler registered for its task name. Delivery is at-least-once:

- handler succeeds -> message deleted
- handler raises -> message left on the queue, redelivered after the visibility timeout
- malformed message (BatchPayloadError) -> deleted, retrying cannot fix it
- delivered more than ``max_delivery_attempts`` times -> deleted as poison
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Set

import asyncpg
import httpx
from loguru import logger

from dirsync_api.errors import BatchPayloadError, DirectoryFetchError, DirSyncError
from dirsync_api.sync.models import decode_task_message

TaskHandler = Callable[[Any], Awaitable[Any]]

# Azure Storage Queue returns at most 32 messages per receive call
MAX_MESSAGES_PER_RECEIVE = 32


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error is transient and likely to succeed on redelivery.

    Retryable errors (transient failures):
    - Timeout and network errors (TimeoutError, ConnectionError, httpx transport errors)
    - Database connection errors
    - Directory API 429 / 5xx responses

    Non-retryable errors (permanent failures):
    - BatchPayloadError, ValueError, KeyError, TypeError, PermissionError
    - Directory API 4xx responses (other than 429)

    Args:
        error: The exception to check

    Returns:
        True if error is transient, False otherwise
    """
    if isinstance(error, BatchPayloadError):
        return False

    if isinstance(error, (TimeoutError, ConnectionError, httpx.TransportError)):
        return True

    if isinstance(error, (asyncpg.PostgresConnectionError, asyncpg.InterfaceError)):
        return True

    if isinstance(error, DirectoryFetchError) and error.status_code is not None:
        return error.status_code == 429 or error.status_code >= 500

    if isinstance(error, DirSyncError) and error.__cause__ is not None:
        return is_retryable_error(error.__cause__)

    error_str = str(error).lower()
    error_type = type(error).__name__.lower()

    if "timeout" in error_type or "timeout" in error_str:
        return True

    if "connection" in error_type or "connection" in error_str:
        return True

    if "503" in error_str or "504" in error_str or "service unavailable" in error_str:
        return True

    if "429" in error_str or "rate limit" in error_str or "too many requests" in error_str:
        return True

    # Default: unknown errors are not transient
    return False


async def process_message(
    queue_client,
    message,
    handlers: Dict[str, TaskHandler],
    max_delivery_attempts: int = 5,
) -> bool:
    """
    Decode one queue message and run its handler.

    Args:
        queue_client: SyncTaskQueueClient instance
        message: QueueMessage from receive_messages()
        handlers: Task name -> coroutine function taking the decoded payload
        max_delivery_attempts: Deliveries after which a message is dropped

    Returns:
        True if the handler succeeded, False otherwise
    """
    dequeue_count = getattr(message, "dequeue_count", None) or 1

    if dequeue_count > max_delivery_attempts:
        logger.error(
            f"Dropping poison message after {dequeue_count} deliveries",
            message_id=message.id,
            max_delivery_attempts=max_delivery_attempts,
        )
        await asyncio.to_thread(queue_client.delete_message, message)
        return False

    try:
        task = decode_task_message(message.content)
    except BatchPayloadError as e:
        logger.bind(message_id=message.id, task=e.task_name).error(f"Dropping malformed message: {e}")
        await asyncio.to_thread(queue_client.delete_message, message)
        return False

    handler = handlers.get(task.task)
    if handler is None:
        logger.error(f"No handler registered for task '{task.task}' - dropping message", message_id=message.id)
        await asyncio.to_thread(queue_client.delete_message, message)
        return False

    logger.info(f"Processing {task.task} task", message_id=message.id, dequeue_count=dequeue_count)

    try:
        await handler(task.payload)
    except BatchPayloadError as e:
        logger.bind(message_id=message.id, task=task.task).error(f"Dropping task with invalid payload: {e}")
        await asyncio.to_thread(queue_client.delete_message, message)
        return False
    except Exception as e:
        # Left on the queue: becomes visible again after the visibility timeout
        if is_retryable_error(e):
            logger.bind(message_id=message.id, task=task.task, dequeue_count=dequeue_count).warning(
                f"Task failed with retryable error, will be redelivered: {e}"
            )
        else:
            logger.bind(message_id=message.id, task=task.task, dequeue_count=dequeue_count).exception(
                f"Task failed: {e}"
            )
        return False

    await asyncio.to_thread(queue_client.delete_message, message)
    logger.success(f"Task {task.task} completed", message_id=message.id)
    return True


async def start_queue_consumer(
    queue_client,
    handlers: Dict[str, TaskHandler],
    concurrency: int = 5,
    poll_interval: float = 1.0,
    visibility_timeout: int = 600,
    max_delivery_attempts: int = 5,
) -> None:
    """
    Start background queue consumer for directory sync tasks.

    Runs as an async background task in the web app. At most ``concurrency``
    messages are processed at the same time; the queue is polled every
    ``poll_interval`` seconds.

    Args:
        queue_client: SyncTaskQueueClient instance
        handlers: Task name -> coroutine function taking the decoded payload
        concurrency: Maximum messages processed in parallel
        poll_interval: Seconds between polls
        visibility_timeout: Seconds a received message stays invisible
        max_delivery_attempts: Deliveries after which a message is dropped
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    logger.info(
        "Directory sync queue consumer started",
        concurrency=concurrency,
        tasks=sorted(handlers),
    )

    semaphore = asyncio.Semaphore(concurrency)
    in_flight: Set[asyncio.Task] = set()

    async def run(message) -> None:
        try:
            await process_message(queue_client, message, handlers, max_delivery_attempts)
        except Exception as e:
            logger.bind(message_id=getattr(message, "id", None)).exception(f"Error processing message: {e}")
        finally:
            semaphore.release()

    try:
        while True:
            try:
                free_slots = concurrency - len(in_flight)
                if free_slots > 0:
                    messages = await asyncio.to_thread(
                        queue_client.receive_messages,
                        max_messages=min(free_slots, MAX_MESSAGES_PER_RECEIVE),
                        visibility_timeout=visibility_timeout,
                    )
                    for message in messages:
                        await semaphore.acquire()
                        task = asyncio.create_task(run(message))
                        in_flight.add(task)
                        task.add_done_callback(in_flight.discard)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Queue consumer error: {e}")

            await asyncio.sleep(poll_interval)

    except asyncio.CancelledError:
        logger.info("Queue consumer task cancelled - shutting down")
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)
        raise
