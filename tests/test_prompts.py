"""Tests for interactive confirmations."""

from unittest.mock import patch

from gpsc_infra.prompts import DeletionConfirmation, confirm, confirm_typed


class TestConfirm:
    @patch("gpsc_infra.prompts.click.confirm")
    def test_assume_yes_skips_prompt(self, mock_confirm):
        assert confirm("Proceed?", assume_yes=True)
        mock_confirm.assert_not_called()

    @patch("gpsc_infra.prompts.click.confirm", return_value=False)
    def test_defaults_to_no(self, mock_confirm):
        assert not confirm("Proceed?")
        assert mock_confirm.call_args[1]["default"] is False


class TestConfirmTyped:
    @patch("gpsc_infra.prompts.click.prompt", return_value="DELETE")
    def test_exact_phrase(self, mock_prompt):
        assert confirm_typed("DELETE", "Really?")

    @patch("gpsc_infra.prompts.click.prompt", return_value="delete")
    def test_phrase_is_case_sensitive(self, mock_prompt):
        assert not confirm_typed("DELETE", "Really?")


class TestDeletionConfirmation:
    def test_dry_run_and_yes_skip_all_stages(self):
        confirmation = DeletionConfirmation("Q", phrase="X", final_yes=True)

        assert confirmation.ask(dry_run=True)
        assert confirmation.ask(assume_yes=True)

    @patch("gpsc_infra.prompts.click.prompt")
    def test_typed_phrase_then_final_yes(self, mock_prompt):
        mock_prompt.side_effect = ["DELETE-ALL-STORAGE-DATA", "yes"]
        confirmation = DeletionConfirmation(
            "Data will be lost", phrase="DELETE-ALL-STORAGE-DATA", final_yes=True
        )

        assert confirmation.ask()

    @patch("gpsc_infra.prompts.click.prompt")
    def test_final_answer_other_than_yes_cancels(self, mock_prompt):
        mock_prompt.side_effect = ["DELETE-ALL-STORAGE-DATA", "y"]
        confirmation = DeletionConfirmation(
            "Data will be lost", phrase="DELETE-ALL-STORAGE-DATA", final_yes=True
        )

        assert not confirmation.ask()

    @patch("gpsc_infra.prompts.click.prompt", return_value="nope")
    def test_wrong_phrase_stops_before_final_prompt(self, mock_prompt):
        confirmation = DeletionConfirmation("Q", phrase="DELETE", final_yes=True)

        assert not confirmation.ask()
        assert mock_prompt.call_count == 1

    @patch("gpsc_infra.prompts.click.confirm", return_value=True)
    def test_plain_question(self, mock_confirm):
        assert DeletionConfirmation("Delete it?").ask()
