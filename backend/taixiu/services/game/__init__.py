"""Round mechanics for a dice table: seeds, bets, payouts and room bookkeeping.

Nothing here talks to Socket.IO; the server turns what these return into
messages.
"""
