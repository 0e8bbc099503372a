from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Dojo battle server!'})

@main.route('/health')
def health():
    ctx = current_app.extensions['dojo']
    return jsonify({
        'status': 'ok',
        'rooms': len(ctx.store),
        'onlineUsers': len(ctx.presence),
    })
