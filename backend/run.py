from salpakan import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Werkzeug is fine for two players; put eventlet/gevent in front for anything bigger
    socketio.run(
        app,
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG'],
        allow_unsafe_werkzeug=True,
    )
