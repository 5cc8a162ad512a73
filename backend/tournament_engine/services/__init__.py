"""
Services Layer

Pure tournament engine plus the persistence shell around it:
- Engine modules (fixtures, bracket, scheduler, walkover, archiver, roster) take and
  return frozen snapshots; they never touch sessions, the clock or the network
- state_store is the only module that maps snapshots to database records
- Nothing here depends on HTTP request/response objects
"""
