"""
Cache key names. Dependencies noted next to each name.

Mutations invalidate the exact keys they affect; see the services.
"""

USER_ROLE = "user-role"                                    # (email,)

ALL_SESSIONS = "all-sessions"                              # ()
ADMIN_SESSIONS = "admin-sessions"                          # ()
SESSIONS_FOR_TUTOR = "sessions-for-tutor"                  # (tutor email,)
APPROVED_SESSIONS_FOR_TUTOR = "approved-sessions-for-tutor"  # (tutor email,)
SESSION = "session"                                        # (session id,)

PAYMENTS = "payments"                                      # (student email,)

TUTOR_STATUS = "tutor-status"                              # (email,)
PENDING_TUTORS = "pending-tutors"                          # ()
ALL_TUTORS = "all-tutors"                                  # ()

ALL_MATERIALS = "all-materials"                            # ()
MATERIALS_FOR_TUTOR = "materials-for-tutor"                # (tutor email,)

FEEDBACKS = "feedbacks"                                    # (session id,)
NOTES = "notes"                                            # (student email,)
