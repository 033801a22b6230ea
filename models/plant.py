from tortoise import fields, models


class PlantRecord(models.Model):
    id = fields.UUIDField(pk=True)
    user = fields.ForeignKeyField('models.User', related_name='plants')

    name = fields.CharField(max_length=255)
    type = fields.CharField(max_length=255, null=True)
    # client-local URI or remote URL of the photo
    image = fields.CharField(max_length=1000, null=True)

    # recognition output, stored in its canonical camelCase shape
    is_plant = fields.JSONField()
    classification = fields.JSONField()
    plant_health = fields.JSONField(null=True)
    model_version = fields.CharField(max_length=100, null=True)
    # Plant.id identification handle for follow-up questions
    access_token = fields.CharField(max_length=255, null=True)
    recognized_at = fields.DatetimeField(null=True)
    recognition_completed_at = fields.DatetimeField(null=True)

    watering_frequency_days = fields.IntField(null=True)
    last_watered = fields.DatetimeField(null=True)
    fertilizing_frequency_days = fields.IntField(null=True)
    last_fertilized = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "plant_records"
