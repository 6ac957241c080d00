"""
PI capacity reporting package.

Pure engine (locator, classifier, role detector, exclusions, aggregator) plus
the use case and CLI that wire it to the data adapters.
"""
