"""Services Layer: gate registry reads, role resolution, and transactional participation writes.

Invariants:
    - ParticipationManager is the only writer of event_participants
    - Services call core/ for decisions; core never calls back
"""
