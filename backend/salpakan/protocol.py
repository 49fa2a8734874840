# Socket.IO event names and namespace shared by the server handlers and the client.
#
# client -> server
#   ready:           { ready: true|false }
#   move:            { fromRow, fromCol, toRow, toCol }
#   join_game:       { game_code }
#   ping:            any
# server -> client
#   joined:          { room, side: 'A'|'B'|null }
#   opponentReady:   { ready: true|false }  another player's ready flag changed
#   startCountdown:  { startTime: <epoch-ms> }
#   move:            relayed verbatim from the other peer
#   pong:            echo of ping
#   error:           { message }

NAMESPACE = '/ws'

READY = 'ready'
MOVE = 'move'
JOIN_GAME = 'join_game'
PING = 'ping'

JOINED = 'joined'
START_COUNTDOWN = 'startCountdown'
OPPONENT_READY = 'opponentReady'
PONG = 'pong'
ERROR = 'error'
