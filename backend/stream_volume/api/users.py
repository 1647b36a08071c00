from flask import Blueprint, jsonify, request, current_app
from stream_volume import get_stream_session
from stream_volume.services.volume import ActivityResult
from stream_volume.socketio_events import emit_volume_update


users = Blueprint('users', __name__)


def activity_payload(result: ActivityResult) -> dict:
    """JSON body shared by every endpoint that records an event.

    ``volume`` is the post-event value; ``volumeBefore`` is what the user
    had before this event was counted.
    """
    after = result.after
    return {
        'username': result.username,
        'counter': result.counter,
        'messageCount': result.record.message_count,
        'ttsCount': result.record.tts_count,
        'volume': after.volume,
        'volumeBefore': result.before.volume,
        'volumeAfter': after.volume,
        'volumePercent': after.volume_percent,
        'remainingToMax': after.remaining_to_max,
        'eventsUntilNext': after.events_until_next,
        'atMax': after.at_max,
        'volumeLevelUp': result.level_up,
    }


@users.route('/<string:username>/volume', methods=['GET'])
def get_user_volume(username):
    session = get_stream_session()
    name, record, reading = session.peek(username)
    payload = {
        'username': name,
        'counter': session.settings().counter,
        'messageCount': record.message_count if record else 0,
        'ttsCount': record.tts_count if record else 0,
        'lastMessage': record.last_event_message if record else None,
        'lastEventTime': record.last_event_time if record else None,
        **reading.to_dict(),
    }
    payload['messagesUntilNext'] = reading.events_until_next
    return jsonify(payload)


@users.route('/<string:username>/message', methods=['POST'])
def track_message(username):
    result = get_stream_session().record_message(username)
    payload = activity_payload(result)
    payload['messagesUntilNext'] = result.after.events_until_next
    current_app.logger.info(
        f"[message] user={result.username} count={result.record.message_count} volume={result.after.volume}"
    )
    emit_volume_update(payload)
    return jsonify(payload)


@users.route('/<string:username>/tts', methods=['POST'])
def track_tts(username):
    data = request.get_json(silent=True) or {}
    message = data.get('message') if isinstance(data, dict) else None
    if message is not None and not isinstance(message, str):
        return jsonify({'error': 'message must be a string'}), 400
    result = get_stream_session().record_tts(username, message)
    payload = activity_payload(result)
    payload['lastMessage'] = result.record.last_event_message
    current_app.logger.info(
        f"[tts] user={result.username} count={result.record.tts_count} volume={result.after.volume}"
    )
    emit_volume_update(payload)
    return jsonify(payload)
