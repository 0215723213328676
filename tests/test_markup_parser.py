from handoff_relay.services.markup_parser import parse_button, parse_reply


class TestParseButton:
    def test_text_button(self):
        assert parse_button("* Opening hours") == {"type": "text", "value": "Opening hours"}

    def test_link_button_defaults_to_blank(self):
        assert parse_button("* Docs https://example.com/docs") == {
            "type": "url",
            "value": "Docs",
            "link": "https://example.com/docs",
            "target": "blank",
        }

    def test_link_targets(self):
        assert parse_button("* Home < https://example.com")["target"] == "parent"
        assert parse_button("* Home > https://example.com")["target"] == "self"

    def test_not_a_button(self):
        assert parse_button("*bold*") is None


class TestParseReply:
    def test_plain_text(self):
        message = parse_reply("Hello there")
        assert message.text == "Hello there"
        assert message.type == "text"
        assert message.attributes is None
        assert message.metadata is None

    def test_buttons_become_template_attachment(self):
        message = parse_reply("What do you need?\n* Prices\n* Website https://example.com")

        assert message.text == "What do you need?"
        buttons = message.attributes["attachment"]["buttons"]
        assert message.attributes["attachment"]["type"] == "template"
        assert [button["value"] for button in buttons] == ["Prices", "Website"]
        assert buttons[1]["link"] == "https://example.com"

    def test_image(self):
        message = parse_reply("Our shop\ntdImage:https://example.com/shop.png")
        assert message.type == "image"
        assert message.text == "Our shop"
        assert message.metadata == {"src": "https://example.com/shop.png"}

    def test_image_with_size(self):
        message = parse_reply("tdImage,300x200:https://example.com/a.png")
        assert message.metadata == {"src": "https://example.com/a.png", "width": 300, "height": 200}

    def test_frame_and_video(self):
        assert parse_reply("tdFrame:https://example.com/map").type == "frame"
        video = parse_reply("Watch\ntdVideo:https://example.com/v")
        assert video.type == "frame"
        assert video.metadata == {"src": "https://example.com/v"}

    def test_empty_text(self):
        assert parse_reply("").text == ""
