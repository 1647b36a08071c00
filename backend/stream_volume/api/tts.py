"""Redemption endpoints for automation platforms that can only issue GETs.

Every call here records one TTS use. Use ``GET /api/user/<name>/volume``
to read a volume without counting anything.
"""
from flask import Blueprint, Response, jsonify, current_app
from stream_volume import get_stream_session
from stream_volume.api.users import activity_payload
from stream_volume.socketio_events import emit_volume_update


tts = Blueprint('tts', __name__)


def _record(username):
    result = get_stream_session().record_tts(username)
    current_app.logger.info(
        f"[tts-redeem] user={result.username} count={result.record.tts_count} "
        f"before={result.before.volume} after={result.after.volume}"
    )
    payload = activity_payload(result)
    emit_volume_update(payload)
    return result, payload


@tts.route('/<string:username>', methods=['GET'])
def redeem_plain(username):
    result, _ = _record(username)
    # Chat bots paste this straight into a command, so no JSON
    return Response(str(result.after.volume), mimetype='text/plain')


@tts.route('/<string:username>/json', methods=['GET'])
def redeem_json(username):
    _, payload = _record(username)
    return jsonify(payload)
