"""Deprecated parameter and command names and their replacements.

Both tables are read-only. No replacement is itself a deprecated name, so
applying them is idempotent.
"""

from __future__ import annotations

from types import MappingProxyType

PARAMETER_RENAMES = MappingProxyType({
    "ExcludeAllSystemDb": "ExcludeSystem",
    "ExcludeAllUserDb": "ExcludeUser",
    "NetworkShare": "SharedPath",
    "NoDatabases": "ExcludeDatabase",
    "NoDisabledJobs": "ExcludeDisabledJobs",
    "NoJobs": "ExcludeJobs",
    "NoJobSteps": "ExcludeJobSteps",
    "NoQueryTextColumn": "ExcludeQueryTextColumn",
    "NoSystem": "ExcludeSystemLogins",
    "NoSystemDb": "ExcludeSystem",
    "NoSystemLogins": "ExcludeSystemLogins",
    "NoSystemObjects": "ExcludeSystemObjects",
    "NoSystemSpid": "ExcludeSystemSpids",
    "PasswordExpiration": "PasswordExpirationEnabled",
    "PasswordPolicy": "PasswordPolicyEnforced",
    "ServerInstance": "SqlInstance",
    "Silent": "EnableException",
    "SqlServer": "SqlInstance",
    "SqlCredentials": "SqlCredential",
    "UseLastBackups": "UseLastBackup",
    "NoSystemObject": "ExcludeSystemObjects",
})

COMMAND_RENAMES = MappingProxyType({
    # Sql* prefixed commands from the original module
    "Copy-SqlAgentCategory": "Copy-DbaAgentJobCategory",
    "Copy-SqlAlert": "Copy-DbaAgentAlert",
    "Copy-SqlAudit": "Copy-DbaInstanceAudit",
    "Copy-SqlAuditSpecification": "Copy-DbaInstanceAuditSpecification",
    "Copy-SqlBackupDevice": "Copy-DbaBackupDevice",
    "Copy-SqlCentralManagementServer": "Copy-DbaRegServer",
    "Copy-SqlCredential": "Copy-DbaCredential",
    "Copy-SqlCustomError": "Copy-DbaCustomError",
    "Copy-SqlDatabase": "Copy-DbaDatabase",
    "Copy-SqlDatabaseAssembly": "Copy-DbaDbAssembly",
    "Copy-SqlDatabaseMail": "Copy-DbaDbMail",
    "Copy-SqlDataCollector": "Copy-DbaDataCollector",
    "Copy-SqlEndpoint": "Copy-DbaEndpoint",
    "Copy-SqlExtendedEvent": "Copy-DbaXESession",
    "Copy-SqlJob": "Copy-DbaAgentJob",
    "Copy-SqlJobServer": "Copy-DbaAgentServer",
    "Copy-SqlLinkedServer": "Copy-DbaLinkedServer",
    "Copy-SqlLogin": "Copy-DbaLogin",
    "Copy-SqlOperator": "Copy-DbaAgentOperator",
    "Copy-SqlPolicyManagement": "Copy-DbaPolicyManagement",
    "Copy-SqlProxyAccount": "Copy-DbaAgentProxy",
    "Copy-SqlResourceGovernor": "Copy-DbaResourceGovernor",
    "Copy-SqlServerAgent": "Copy-DbaAgentServer",
    "Copy-SqlServerRole": "Copy-DbaServerRole",
    "Copy-SqlServerTrigger": "Copy-DbaInstanceTrigger",
    "Copy-SqlSharedSchedule": "Copy-DbaAgentSchedule",
    "Copy-SqlSpConfigure": "Copy-DbaSpConfigure",
    "Copy-SqlSsisCatalog": "Copy-DbaSsisCatalog",
    "Copy-SqlSysDbUserObjects": "Copy-DbaSysDbUserObject",
    "Copy-SqlUserDefinedMessage": "Copy-DbaCustomError",
    "Expand-SqlTLogResponsibly": "Expand-DbaDbLogFile",
    "Export-SqlLogin": "Export-DbaLogin",
    "Export-SqlSpConfigure": "Export-DbaSpConfigure",
    "Export-SqlUser": "Export-DbaUser",
    "Find-SqlDuplicateIndex": "Find-DbaDbDuplicateIndex",
    "Find-SqlUnusedIndex": "Find-DbaDbUnusedIndex",
    "Get-SqlMaxMemory": "Get-DbaMaxMemory",
    "Get-SqlRegisteredServerName": "Get-DbaRegServer",
    "Get-SqlServerKey": "Get-DbaProductKey",
    "Import-SqlSpConfigure": "Import-DbaSpConfigure",
    "Install-SqlWhoIsActive": "Install-DbaWhoIsActive",
    "Remove-SqlDatabaseSafely": "Remove-DbaDatabaseSafely",
    "Remove-SqlOrphanUser": "Remove-DbaDbOrphanUser",
    "Repair-SqlOrphanUser": "Repair-DbaDbOrphanUser",
    "Reset-SqlAdmin": "Reset-DbaAdmin",
    "Reset-SqlSaPassword": "Reset-DbaAdmin",
    "Restore-SqlBackupFromDirectory": "Restore-DbaDatabase",
    "Set-SqlMaxMemory": "Set-DbaMaxMemory",
    "Set-SqlTempDbConfiguration": "Set-DbaTempDbConfig",
    "Show-SqlDatabaseList": "Show-DbaDbList",
    "Show-SqlMigrationConstraint": "Test-DbaMigrationConstraint",
    "Show-SqlServerFileSystem": "Show-DbaInstanceFileSystem",
    "Show-SqlWhoIsActive": "Invoke-DbaWhoIsActive",
    "Start-SqlMigration": "Start-DbaMigration",
    "Sync-SqlLoginPermissions": "Sync-DbaLoginPermission",
    "Test-SqlConnection": "Test-DbaConnection",
    "Test-SqlDiskAllocation": "Test-DbaDiskAllocation",
    "Test-SqlMigrationConstraint": "Test-DbaMigrationConstraint",
    "Test-SqlNetworkLatency": "Test-DbaNetworkLatency",
    "Test-SqlPath": "Test-DbaPath",
    "Test-SqlTempDbConfiguration": "Test-DbaTempDbConfig",
    "Watch-SqlDbLogin": "Watch-DbaDbLogin",
    # Dba*Database* and other long forms shortened later
    "Add-DbaRegisteredServer": "Add-DbaRegServer",
    "Add-DbaRegisteredServerGroup": "Add-DbaRegServerGroup",
    "Backup-DbaDatabaseCertificate": "Backup-DbaDbCertificate",
    "Backup-DbaDatabaseMasterKey": "Backup-DbaDbMasterKey",
    "Clear-DbaSqlConnectionPool": "Clear-DbaConnectionPool",
    "Connect-DbaServer": "Connect-DbaInstance",
    "Copy-DbaCentralManagementServer": "Copy-DbaRegServer",
    "Copy-DbaDatabaseAssembly": "Copy-DbaDbAssembly",
    "Copy-DbaDatabaseMail": "Copy-DbaDbMail",
    "Copy-DbaExtendedEvent": "Copy-DbaXESession",
    "Copy-DbaJobCategory": "Copy-DbaAgentJobCategory",
    "Copy-DbaJobServer": "Copy-DbaAgentServer",
    "Copy-DbaQueryStoreConfig": "Copy-DbaDbQueryStoreOption",
    "Copy-DbaSqlDataCollector": "Copy-DbaDataCollector",
    "Copy-DbaSqlPolicyManagement": "Copy-DbaPolicyManagement",
    "Copy-DbaSqlServerAgent": "Copy-DbaAgentServer",
    "Copy-DbaTableData": "Copy-DbaDbTableData",
    "Expand-DbaTLogResponsibly": "Expand-DbaDbLogFile",
    "Export-DbaDacpac": "Export-DbaDacPackage",
    "Export-DbaRegisteredServer": "Export-DbaRegServer",
    "Find-DbaDuplicateIndex": "Find-DbaDbDuplicateIndex",
    "Find-DbaUnusedIndex": "Find-DbaDbUnusedIndex",
    "Get-DbaConfig": "Get-DbatoolsConfig",
    "Get-DbaConfigValue": "Get-DbatoolsConfigValue",
    "Get-DbaDatabaseAssembly": "Get-DbaDbAssembly",
    "Get-DbaDatabaseCertificate": "Get-DbaDbCertificate",
    "Get-DbaDatabaseEncryption": "Get-DbaDbEncryption",
    "Get-DbaDatabaseFile": "Get-DbaDbFile",
    "Get-DbaDatabaseFreeSpace": "Get-DbaDbSpace",
    "Get-DbaDatabaseMasterKey": "Get-DbaDbMasterKey",
    "Get-DbaDatabasePartitionFunction": "Get-DbaDbPartitionFunction",
    "Get-DbaDatabasePartitionScheme": "Get-DbaDbPartitionScheme",
    "Get-DbaDatabaseSnapshot": "Get-DbaDbSnapshot",
    "Get-DbaDatabaseSpace": "Get-DbaDbSpace",
    "Get-DbaDatabaseState": "Get-DbaDbState",
    "Get-DbaDatabaseUdf": "Get-DbaDbUdf",
    "Get-DbaDatabaseUser": "Get-DbaDbUser",
    "Get-DbaDatabaseView": "Get-DbaDbView",
    "Get-DbaDbQueryStoreOptions": "Get-DbaDbQueryStoreOption",
    "Get-DbaJobCategory": "Get-DbaAgentJobCategory",
    "Get-DbaLogShippingError": "Get-DbaDbLogShipError",
    "Get-DbaOrphanUser": "Get-DbaDbOrphanUser",
    "Get-DbaQueryStoreConfig": "Get-DbaDbQueryStoreOption",
    "Get-DbaRegisteredServer": "Get-DbaRegServer",
    "Get-DbaRegisteredServerGroup": "Get-DbaRegServerGroup",
    "Get-DbaRegisteredServerStore": "Get-DbaRegServerStore",
    "Get-DbaRoleMember": "Get-DbaDbRoleMember",
    "Get-DbaSqlBuildReference": "Get-DbaBuildReference",
    "Get-DbaSqlFeature": "Get-DbaFeature",
    "Get-DbaSqlInstanceProperty": "Get-DbaInstanceProperty",
    "Get-DbaSqlInstanceUserOption": "Get-DbaInstanceUserOption",
    "Get-DbaSqlManagementObject": "Get-DbaManagementObject",
    "Get-DbaSqlModule": "Get-DbaModule",
    "Get-DbaSqlProductKey": "Get-DbaProductKey",
    "Get-DbaSqlRegistryRoot": "Get-DbaRegistryRoot",
    "Get-DbaSqlService": "Get-DbaService",
    "Get-DbaTable": "Get-DbaDbTable",
    "Get-DbaTraceFile": "Get-DbaTrace",
    "Get-DbaUserLevelPermission": "Get-DbaUserPermission",
    "Get-DbaXEventSession": "Get-DbaXESession",
    "Get-DbaXEventSessionTarget": "Get-DbaXESessionTarget",
    "Import-DbaCsvToSql": "Import-DbaCsv",
    "Import-DbaRegisteredServer": "Import-DbaRegServer",
    "Invoke-DbaCmd": "Invoke-DbaQuery",
    "Invoke-DbaDatabaseClone": "Invoke-DbaDbClone",
    "Invoke-DbaDatabaseShrink": "Invoke-DbaDbShrink",
    "Invoke-DbaDatabaseUpgrade": "Invoke-DbaDbUpgrade",
    "Invoke-DbaLogShipping": "Invoke-DbaDbLogShipping",
    "Invoke-DbaLogShippingRecovery": "Invoke-DbaDbLogShipRecovery",
    "Invoke-DbaSqlQuery": "Invoke-DbaQuery",
    "Move-DbaRegisteredServer": "Move-DbaRegServer",
    "Move-DbaRegisteredServerGroup": "Move-DbaRegServerGroup",
    "New-DbaDatabaseCertificate": "New-DbaDbCertificate",
    "New-DbaDatabaseMasterKey": "New-DbaDbMasterKey",
    "New-DbaDatabaseSnapshot": "New-DbaDbSnapshot",
    "New-DbaPublishProfile": "New-DbaDacProfile",
    "New-DbaSqlConnectionString": "New-DbaConnectionString",
    "New-DbaSqlConnectionStringBuilder": "New-DbaConnectionStringBuilder",
    "New-DbaSqlDirectory": "New-DbaDirectory",
    "Out-DbaDataTable": "ConvertTo-DbaDataTable",
    "Remove-DbaDatabaseCertificate": "Remove-DbaDbCertificate",
    "Remove-DbaDatabaseMasterKey": "Remove-DbaDbMasterKey",
    "Remove-DbaDatabaseSnapshot": "Remove-DbaDbSnapshot",
    "Remove-DbaOrphanUser": "Remove-DbaDbOrphanUser",
    "Remove-DbaRegisteredServer": "Remove-DbaRegServer",
    "Remove-DbaRegisteredServerGroup": "Remove-DbaRegServerGroup",
    "Repair-DbaOrphanUser": "Repair-DbaDbOrphanUser",
    "Restore-DbaDatabaseCertificate": "Restore-DbaDbCertificate",
    "Restore-DbaFromDatabaseSnapshot": "Restore-DbaDbSnapshot",
    "Set-DbaConfig": "Set-DbatoolsConfig",
    "Set-DbaDatabaseOwner": "Set-DbaDbOwner",
    "Set-DbaDatabaseState": "Set-DbaDbState",
    "Set-DbaDbQueryStoreOptions": "Set-DbaDbQueryStoreOption",
    "Set-DbaJobOwner": "Set-DbaAgentJobOwner",
    "Set-DbaQueryStoreConfig": "Set-DbaDbQueryStoreOption",
    "Show-DbaDatabaseList": "Show-DbaDbList",
    "Show-DbaServerFileSystem": "Show-DbaInstanceFileSystem",
    "Test-DbaDatabaseCollation": "Test-DbaDbCollation",
    "Test-DbaDatabaseCompatibility": "Test-DbaDbCompatibility",
    "Test-DbaDatabaseOwner": "Test-DbaDbOwner",
    "Test-DbaFullRecoveryModel": "Test-DbaDbRecoveryModel",
    "Test-DbaJobOwner": "Test-DbaAgentJobOwner",
    "Test-DbaLogShippingStatus": "Test-DbaDbLogShipStatus",
    "Test-DbaRecoveryModel": "Test-DbaDbRecoveryModel",
    "Test-DbaSqlBuild": "Test-DbaBuild",
    "Test-DbaSqlPath": "Test-DbaPath",
    "Test-DbaValidLogin": "Test-DbaWindowsLogin",
    "Uninstall-DbaWatchUpdate": "Uninstall-DbatoolsWatchUpdate",
    "Watch-DbaUpdate": "Watch-DbatoolsUpdate",
})
