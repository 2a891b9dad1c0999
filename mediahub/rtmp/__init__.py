"""RTMP helpers: URL parsing, user control messages, session constants and errors, hex dumps."""