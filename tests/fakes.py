class FakeBus:
    """Stands in for the Redis publisher and records every message."""

    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 0

    def events(self, channel):
        return [message["type"] for published_channel, message in self.published if published_channel == channel]


class FakeConnection:
    def __init__(self):
        self.sent = []

    async def send_json(self, message):
        self.sent.append(message)
