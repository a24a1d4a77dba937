"""AWS Lambda handler for the youth event planner."""
import json
import logging
import os
import time
from typing import Any, Dict

from completion.openai_provider import OpenAICompletionProvider
from planner.event_planner import EventPlanner
from storage.datastore import Datastore


ACTIONS = (
    'create_event',
    'get_events',
    'get_event',
    'get_ai_game_recommendations',
    'save_game',
    'save_recommended_game',
    'get_games',
    'register_games_to_event',
    'get_event_games',
    'unregister_game_from_event',
    'create_memo',
    'get_event_memos',
    'update_memo',
    'delete_memo',
    'generate_memo_ai_content',
    'get_memo_ai_contents',
    'create_checklist',
    'get_event_checklists',
    'delete_checklist',
    'create_checklist_item',
    'update_checklist_item',
    'delete_checklist_item',
    'create_checklist_sub_item',
    'update_checklist_sub_item',
    'delete_checklist_sub_item',
    'update_checklist_item_status',
    'generate_checklist_items',
    'create_program',
    'update_program',
    'delete_program',
    'get_event_programs',
    'convert_game_to_program',
    'convert_memo_to_program',
    'save_schedule_blocks',
    'get_schedule_blocks',
    'add_program_to_schedule',
    'remove_program_from_schedule',
    'update_block_time',
    'get_schedule_preview',
    'generate_schedule',
)


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key in ('action', 'error_type', 'duration_seconds'):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


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


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json; charset=utf-8'},
        'body': json.dumps(body, ensure_ascii=False)
    }


def parse_request(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the action request from an invocation payload.

    Accepts API Gateway proxy events (JSON string "body") and direct
    invocations carrying "action"/"params" at the top level.

    Raises:
        ValueError: If the body is not a JSON object or names no action
    """
    payload = event
    if 'body' in event:
        body = event.get('body') or '{}'
        payload = json.loads(body) if isinstance(body, str) else body

    if not isinstance(payload, dict):
        raise ValueError('Request body must be a JSON object')

    action = payload.get('action')
    if not action:
        raise ValueError('Request is missing "action"')

    params = payload.get('params') or {}
    if not isinstance(params, dict):
        raise ValueError('"params" must be a JSON object')

    return {'action': action, 'params': params}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for planner actions.

    Args:
        event: API Gateway proxy event or direct invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and a JSON result object body
    """
    # Read configuration from environment variables
    table_prefix = os.environ.get('TABLE_PREFIX', 'youth-planner')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    api_key = os.environ.get('OPENAI_API_KEY', '')
    model = os.environ.get('OPENAI_MODEL', OpenAICompletionProvider.DEFAULT_MODEL)
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        request = parse_request(event)
    except (ValueError, json.JSONDecodeError) as e:
        logger.warning(f"Rejected request: {e}")
        return _response(400, {'success': False, 'error': str(e)})

    action = request['action']
    if action not in ACTIONS:
        logger.warning(f"Unknown action: {action}")
        return _response(400, {'success': False, 'error': f"Unknown action: {action}"})

    logger.info("Action started", extra={'action': action})

    try:
        datastore = Datastore(table_prefix=table_prefix)
        completion_provider = OpenAICompletionProvider(
            api_key=api_key,
            model=model,
            timeout=timeout_seconds
        )
        planner = EventPlanner(datastore, completion_provider)

        try:
            result = getattr(planner, action)(**request['params'])
        except TypeError as e:
            # Parameters that do not fit the action signature
            logger.warning(f"Invalid parameters for {action}: {e}")
            return _response(400, {'success': False, 'error': f"Invalid parameters: {e}"})

        duration = time.time() - start_time
        logger.info(
            "Action completed",
            extra={
                'action': action,
                'duration_seconds': round(duration, 2)
            }
        )
        return _response(200, result.to_dict())

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Action failed: {str(e)}",
            extra={
                'action': action,
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'success': False,
            'error': str(e),
            'error_type': type(e).__name__
        })
