import pytest

from harmony.core.exceptions import UnknownFieldError
from harmony.utils.columns import (
    ARTIST_DETAIL_COLUMNS,
    GENERATION_HISTORY_COLUMNS,
    camel_to_snake,
    translate_fields,
)


class TestCamelToSnake:
    def test_simple_names(self):
        assert camel_to_snake("personalityTraits") == "personality_traits"
        assert camel_to_snake("aiTrainingData") == "ai_training_data"
        assert camel_to_snake("backstory") == "backstory"

    def test_each_capital_becomes_a_separator(self):
        assert camel_to_snake("imageURL") == "image_u_r_l"


class TestTranslateFields:
    def test_camel_and_snake_names_both_map(self):
        columns = translate_fields(
            "artist detail",
            ARTIST_DETAIL_COLUMNS,
            {"visualStyle": "neon", "speaking_style": "calm"},
        )
        assert columns == {"visual_style": "neon", "speaking_style": "calm"}

    def test_unknown_field_rejected(self):
        with pytest.raises(UnknownFieldError) as exc_info:
            translate_fields("artist detail", ARTIST_DETAIL_COLUMNS, {"backstory": "x", "artistId": "other"})
        assert exc_info.value.fields == ["artistId"]

    def test_sql_like_field_names_rejected(self):
        with pytest.raises(UnknownFieldError):
            translate_fields("artist detail", ARTIST_DETAIL_COLUMNS, {"backstory = 'x'; --": "y"})

    def test_generation_history_fields(self):
        columns = translate_fields("generation history", GENERATION_HISTORY_COLUMNS, {"errorMessage": "boom"})
        assert columns == {"error_message": "boom"}

    def test_empty_update(self):
        assert translate_fields("artist detail", ARTIST_DETAIL_COLUMNS, {}) == {}
