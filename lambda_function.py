"""AWS Lambda handlers for iCal reservation sync."""
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

from feed.fetcher import FeedFetcher
from storage.property_store import PropertyStore
from storage.reservation_store import ReservationStore
from storage.sync_log_store import SyncLogStore
from sync.config import SyncConfig
from sync.exceptions import (
    FeedNotConfiguredError,
    PropertyNotFoundError,
    SyncRunFailed,
)
from sync.orchestrator import SyncOrchestrator
from sync.run_logger import RunLogger


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in self.RESERVED:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_components(config: SyncConfig) -> Tuple[SyncOrchestrator, RunLogger]:
    """
    Wire stores, fetcher, orchestrator and run logger from configuration.

    Args:
        config: Runtime configuration

    Returns:
        Tuple of (SyncOrchestrator, RunLogger)
    """
    orchestrator = SyncOrchestrator(
        property_store=PropertyStore(table_name=config.properties_table),
        reservation_store=ReservationStore(table_name=config.reservations_table),
        fetcher=FeedFetcher(
            timeout=config.feed_timeout_seconds,
            max_retries=config.feed_max_retries
        ),
        lease_seconds=config.sync_lease_seconds,
        default_guest_name=config.default_guest_name,
    )
    run_logger = RunLogger(SyncLogStore(
        table_name=config.sync_logs_table,
        retention_days=config.sync_log_retention_days
    ))
    return orchestrator, run_logger


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body, default=str)
    }


def _error_response(status_code: int, error: Exception, **extra) -> Dict[str, Any]:
    body = {
        'success': False,
        'error': str(error),
        'error_type': type(error).__name__,
    }
    body.update(extra)
    return _response(status_code, body)


def get_caller_identity(event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Return the authorizer context attached by API Gateway, if any.

    Args:
        event: API Gateway proxy event

    Returns:
        Authorizer context dict or None for anonymous requests
    """
    request_context = (event or {}).get('requestContext') or {}
    authorizer = request_context.get('authorizer')
    return authorizer or None


def get_property_id(event: Dict[str, Any]) -> Optional[str]:
    """
    Read the property identifier from path parameters or the JSON body.

    Args:
        event: API Gateway proxy event

    Returns:
        Property identifier or None if absent

    Raises:
        ValueError: If the body is not a JSON object
    """
    path_parameters = (event or {}).get('pathParameters') or {}
    if path_parameters.get('propertyId'):
        return str(path_parameters['propertyId'])

    body = (event or {}).get('body')
    if not body:
        return None
    if isinstance(body, str):
        body = json.loads(body)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")

    property_id = body.get('propertyId')
    return str(property_id) if property_id else None


def _manual_body(run, batch) -> Dict[str, Any]:
    body = {
        'success': True,
        'synced': batch.properties_synced,
        'results': [result.to_dict() for result in batch.results],
        'log_id': run.log_id if run else None,
    }
    if not batch.results:
        body['message'] = 'No properties to synchronize'
    return body


def sync_property_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Operator-triggered sync of a single property.

    Args:
        event: API Gateway proxy event with ``propertyId``
        context: Lambda context object

    Returns:
        Response dict with statusCode and the batch result
    """
    config = SyncConfig.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    if not get_caller_identity(event):
        return _response(401, {'success': False, 'error': 'Unauthorized'})

    try:
        property_id = get_property_id(event)
    except ValueError as e:
        return _error_response(400, e)
    if not property_id:
        return _response(400, {'success': False, 'error': 'propertyId is required'})

    logger.info("Manual property sync requested", extra={'property_id': property_id})

    try:
        orchestrator, run_logger = build_components(config)

        try:
            prop = orchestrator.load_property(property_id)
        except PropertyNotFoundError as e:
            return _error_response(404, e)
        except FeedNotConfiguredError as e:
            return _error_response(400, e)

        run, batch = run_logger.run(lambda: orchestrator.sync_properties([prop]))
        return _response(200, _manual_body(run, batch))

    except SyncRunFailed as e:
        return _error_response(500, e.cause, log_id=e.run.log_id if e.run else None)
    except Exception as e:
        logger.error(
            f"Manual property sync failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, e)


def sync_all_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Operator-triggered sync of every enabled property.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode and the batch result
    """
    config = SyncConfig.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    if not get_caller_identity(event):
        return _response(401, {'success': False, 'error': 'Unauthorized'})

    logger.info("Manual sync of all properties requested")

    try:
        orchestrator, run_logger = build_components(config)
        run, batch = run_logger.run(orchestrator.sync_all)
        return _response(200, _manual_body(run, batch))

    except SyncRunFailed as e:
        return _error_response(500, e.cause, log_id=e.run.log_id if e.run else None)
    except Exception as e:
        logger.error(
            f"Manual sync failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, e)


def scheduled_sync_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Scheduled sync of every enabled property.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode, run identifier and summary statistics
    """
    config = SyncConfig.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Scheduled sync started",
        extra={
            'properties_table': config.properties_table,
            'reservations_table': config.reservations_table,
            'sync_logs_table': config.sync_logs_table
        }
    )

    try:
        orchestrator, run_logger = build_components(config)
        run, batch = run_logger.run(orchestrator.sync_all)

        duration = time.time() - start_time
        logger.info(
            "Scheduled sync completed successfully",
            extra={
                'log_id': run.log_id if run else None,
                'duration_seconds': round(duration, 2),
                'properties_synced': batch.properties_synced,
                'reservations_created': batch.reservations_created,
                'errors': len(batch.errors)
            }
        )

        return _response(200, {
            'success': True,
            'message': 'Scheduled sync completed successfully',
            'log_id': run.log_id if run else None,
            'started_at': run.started_at if run else None,
            'finished_at': run.finished_at if run else None,
            'properties_synced': batch.properties_synced,
            'reservations_created': batch.reservations_created,
            'synced': batch.properties_synced,
            'results': [result.to_dict() for result in batch.results],
            'errors': batch.errors,
            'duration_seconds': round(duration, 2)
        })

    except SyncRunFailed as e:
        duration = time.time() - start_time
        return _error_response(
            500,
            e.cause,
            log_id=e.run.log_id if e.run else None,
            duration_seconds=round(duration, 2)
        )
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Scheduled sync failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, e, duration_seconds=round(duration, 2))


def list_sync_logs_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Return the most recent sync runs, newest first.

    Args:
        event: API Gateway proxy event, optional ``limit`` query parameter
        context: Lambda context object

    Returns:
        Response dict with statusCode and the run records
    """
    config = SyncConfig.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    if not get_caller_identity(event):
        return _response(401, {'success': False, 'error': 'Unauthorized'})

    query = (event or {}).get('queryStringParameters') or {}
    try:
        limit = int(query.get('limit', config.sync_log_limit))
        if limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
    except ValueError as e:
        return _error_response(400, e)

    try:
        runs = SyncLogStore(table_name=config.sync_logs_table).list_recent(limit=limit)
        return _response(200, {
            'success': True,
            'logs': [run.to_dict() for run in runs]
        })
    except Exception as e:
        logger.error(
            f"Failed to list sync logs: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, e)
