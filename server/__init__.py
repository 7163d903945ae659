"""HTTP boundary for the Blackjack table."""
