# ai_reasoner.py
def generate_reasons(snapshot, warning_threshold=3):
    reasons = []
    if not snapshot:
        return ['No session data recorded.']
    events = snapshot.get('events', [])
    counts = {}
    for e in events:
        counts[e.get('type')] = counts.get(e.get('type'), 0) + 1
    if counts.get('multiple_faces', 0) > 0 or snapshot.get('face_count', 0) > 1:
        reasons.append('Multiple faces detected in the camera at some times (possible unauthorized person present).')
    if counts.get('face_lost', 0) > 1:
        reasons.append(f"Face lost {counts['face_lost']} times during the session (possible absence or camera issue).")
    if counts.get('head_pose', 0) > 0:
        reasons.append(f"Looked away from the screen for a sustained period {counts['head_pose']} time(s).")
    if counts.get('audio_detected', 0) > 0 or snapshot.get('audio_detected'):
        reasons.append('Background noise or talking detected (possible external assistance).')
    if snapshot.get('warning_count', 0) >= warning_threshold:
        reasons.append(f"Warning limit reached ({snapshot.get('warning_count')} warnings), session flagged as suspicious.")
    score = snapshot.get('suspicion_score', 0)
    if score >= 50:
        reasons.append(f'High suspicion score {score}%, review recommended.')
    elif score > 30:
        reasons.append(f'Suspicion score at {score}%, keep monitoring.')
    if not reasons:
        reasons.append('No suspicious activity detected.')
    return reasons
