from sia.adapters.sia_store import InMemorySiaStore, SiaStore
