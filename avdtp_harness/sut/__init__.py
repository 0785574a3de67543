"""Reference AVDTP session engine (system under test)"""
