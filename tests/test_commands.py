from tgmcp.commands.telegram import (
    ExecuteMethodCommand,
    GetDialogsCommand,
    GetMessagesCommand,
    SendMessageCommand,
)


def test_valid_parameters_pass():
    assert GetMessagesCommand().validate_params({"session": "+1000", "chatId": "777", "limit": 10}) == []


def test_type_and_range_errors():
    errors = GetDialogsCommand().validate_params({"session": "+1000", "limit": 0})
    assert errors == ["limit must be >= 1"]

    errors = GetDialogsCommand().validate_params({"session": 1000})
    assert errors == ["session should be string"]


def test_empty_strings_are_rejected():
    errors = SendMessageCommand().validate_params({"session": "+1000", "chatId": "", "message": ""})
    assert len(errors) == 2


def test_params_must_be_an_object():
    errors = ExecuteMethodCommand().validate_params({"session": "+1000", "method": "help.GetConfig", "params": []})
    assert errors == ["params should be object"]


def test_apply_defaults_drops_unknown_keys():
    command = ExecuteMethodCommand()
    args = command.apply_defaults({"session": "+1000", "method": "help.GetConfig", "extra": 1})
    assert args == {"session": "+1000", "method": "help.GetConfig", "params": {}}

    args["params"]["x"] = 1
    assert command.apply_defaults({"session": "+1000", "method": "m"})["params"] == {}


def test_to_schema():
    schema = GetDialogsCommand().to_schema()
    assert schema["name"] == "getDialogs"
    assert schema["parameters"]["properties"]["limit"]["default"] == 100
