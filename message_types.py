# Client -> server
JOIN = "join"
LEAVE = "leave"

# Relayed verbatim between room members
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"
RELAYED_TYPES = frozenset({OFFER, ANSWER, ICE_CANDIDATE})

# Server -> client
READY = "ready"
PEER_LEFT = "peer-left"

# **Example exchange**
# - A -> `{"type": "join", "room": "r1"}`
# - B -> `{"type": "join", "room": "r1"}`, A <- `{"type": "ready"}`
# - A -> `{"type": "offer", "sdp": "..."}`, B <- same object
# - B -> `{"type": "answer", "sdp": "..."}`, A <- same object
# - both sides trade `ice-candidate` objects until the direct channel is up
