from tortoise import fields, models

class VoiceSession(models.Model):
    """
    Durable backing row for the database session store.
    - payload: serialized ConversationSession (audio chunks base64-encoded)
    - expires_at: epoch seconds; rows past it are treated as missing and purged lazily
    """
    session_id = fields.CharField(max_length=64, pk=True)
    payload = fields.JSONField()
    expires_at = fields.FloatField(index=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "voice_sessions"

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
