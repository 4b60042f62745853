import chunkstash


def test_public_api():
    for name in chunkstash.__all__:
        assert getattr(chunkstash, name) is not None
    assert chunkstash.__version__
