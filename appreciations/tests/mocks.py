class FakeMessage:
    def __init__(self, content: str):
        self.content = content


class FakeChoice:
    def __init__(self, content: str):
        self.message = FakeMessage(content)


class FakeCompletion:
    def __init__(self, content: str):
        self.choices = [FakeChoice(content)]


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, *args, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        return FakeCompletion(reply)


class FakeChat:
    def __init__(self, replies):
        self.completions = FakeCompletions(replies)


class FakeGroq:
    """Stands in for groq.Groq; replies are returned in order, the last one repeats."""

    def __init__(self, *replies):
        self.chat = FakeChat(replies or ["{prénom} fournit un travail sérieux. Il progresse régulièrement."])

    @property
    def calls(self):
        return self.chat.completions.calls


APPRECIATION_TEXT = (
    "Trimestre très satisfaisant pour {prénom} qui s'investit avec sérieux dans toutes les matières. "
    "Sa participation orale est régulière et pertinente, et ses résultats progressent nettement. "
    "Il doit maintenant gagner en autonomie dans la préparation des évaluations écrites. "
    "Nous l'encourageons vivement à poursuivre ses efforts avec la même rigueur au prochain trimestre."
)

SUMMARY_TEXT = (
    "Classe agréable et investie ce trimestre. Le travail est globalement sérieux et les résultats "
    "encourageants, même si certains élèves doivent encore gagner en régularité. La participation "
    "orale reste active. Nous encourageons la classe à maintenir cette dynamique."
)
