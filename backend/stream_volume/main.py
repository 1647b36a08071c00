from flask import Blueprint, jsonify
from stream_volume import get_stream_session

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Stream volume API is running'})


@main.route('/health')
def health():
    session = get_stream_session()
    return jsonify({
        'status': 'OK',
        'uptime': session.uptime(),
        'totalUsers': len(session.registry),
    })
