from app.core.exceptions import ObjectStoreFailure


class FakeObjectStore:
    """In-memory stand-in for the Supabase bucket.

    ``fail_ops`` makes every call of the named operations fail and
    ``fail_keys`` makes any operation on those keys fail.
    """

    def __init__(self):
        self.objects = {}
        self.fail_ops = set()
        self.fail_keys = set()
        self.calls = []

    def _check(self, op, key):
        self.calls.append((op, key))
        if op in self.fail_ops or key in self.fail_keys:
            raise ObjectStoreFailure(f"Object store {op} failed")

    async def put(self, key, data, content_type):
        self._check("put", key)
        self.objects[key] = bytes(data)

    async def signed_get_url(self, key, expires_in, download_name=None):
        self._check("sign-get", key)
        url = f"https://storage.test/get/{key}?ttl={expires_in}"
        if download_name:
            url += f"&download={download_name}"
        return url

    async def signed_upload_url(self, key):
        self._check("sign-put", key)
        return f"https://storage.test/put/{key}"

    async def copy(self, source_key, dest_key):
        self._check("copy", source_key)
        if source_key not in self.objects:
            raise ObjectStoreFailure("Object store copy failed")
        self.objects[dest_key] = self.objects[source_key]

    async def delete(self, key):
        self._check("delete", key)
        self.objects.pop(key, None)

    async def fetch(self, key, expires_in):
        self._check("fetch", key)
        if key not in self.objects:
            raise ObjectStoreFailure("Object store read failed")
        return self.objects[key]

    # simulates the client PUTting bytes to a signed upload URL
    def client_upload(self, key, data=b"data"):
        self.objects[key] = data


def folder_by_name(project_payload, name):
    return next(f for f in project_payload["folders"] if f["name"] == name)
