from flask import Blueprint, Response, jsonify, request, current_app
from stream_volume import get_stream_session
from stream_volume.services.volume import ValidationError
from stream_volume.services.volume.engine import volume_percent
from stream_volume.services.volume.settings import COUNTER_TTS
from stream_volume.socketio_events import emit_session_reset, emit_settings_update


session_api = Blueprint('session_api', __name__)

LEADERBOARD_FORMATS = ('json', 'text')


def _leaderboard_text(entries, by):
    if not entries:
        return 'No activity yet this stream.'
    if by == COUNTER_TTS:
        heading, unit = 'Top TTS users', 'tts'
    else:
        heading, unit = 'Top chatters', 'msgs'
    parts = []
    for rank, (username, record, volume) in enumerate(entries, start=1):
        parts.append(f"{rank}. {username} ({record.counter(by)} {unit}, {volume_percent(volume)}%)")
    return f"{heading}: " + ' | '.join(parts)


@session_api.route('/leaderboard', methods=['GET'])
def leaderboard():
    limit = request.args.get('limit')
    by = request.args.get('by') or None
    fmt = (request.args.get('format') or 'json').lower()
    if fmt not in LEADERBOARD_FORMATS:
        return jsonify({'error': f"format must be one of: {', '.join(LEADERBOARD_FORMATS)}"}), 400
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            return jsonify({'error': 'limit must be an integer'}), 400

    session = get_stream_session()
    by = by or session.settings().counter
    try:
        entries = session.leaderboard(limit=limit, by=by)
    except ValidationError as exc:
        return jsonify({'error': str(exc)}), 400

    if fmt == 'text':
        return Response(_leaderboard_text(entries, by), mimetype='text/plain')
    return jsonify({
        'by': by,
        'users': [
            {
                'rank': rank,
                'username': username,
                'messageCount': record.message_count,
                'ttsCount': record.tts_count,
                'volume': volume,
            }
            for rank, (username, record, volume) in enumerate(entries, start=1)
        ],
    })


@session_api.route('/settings', methods=['GET'])
def get_settings():
    return jsonify(get_stream_session().settings().to_dict())


@session_api.route('/settings', methods=['PUT'])
def update_settings():
    data = request.get_json(silent=True)
    try:
        settings, adjusted = get_stream_session().update_settings(data)
    except ValidationError as exc:
        return jsonify({'error': str(exc)}), 400
    current_app.logger.info(f"[settings] updated={sorted((data or {}).keys())} adjusted={adjusted}")
    emit_settings_update(settings.to_dict())
    return jsonify({'message': 'Settings updated', 'settings': settings.to_dict(), 'adjusted': adjusted})


@session_api.route('/reset', methods=['POST'])
def reset_session():
    cleared = get_stream_session().reset()
    current_app.logger.info(f"[reset] cleared={cleared}")
    emit_session_reset(cleared)
    return jsonify({'message': 'Stream data reset', 'totalUsers': 0, 'cleared': cleared})


@session_api.route('/stats', methods=['GET'])
def stats():
    s = get_stream_session().stats()
    return jsonify({
        'totalUsers': s['total_users'],
        'totalMessages': s['total_messages'],
        'totalTTS': s['total_tts'],
        'uptime': s['uptime'],
        'sessionStartedAt': s['session_started_at'],
        'sessionUptime': s['session_uptime'],
    })
